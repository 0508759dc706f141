"""
In-process presence registry.

Tracks which users currently hold live connections and which connection
handles (Channels channel names) belong to each of them. A user is online
while they hold at least one handle; opening a second tab adds a handle,
closing one tab removes only that handle.

The registry is process-local by construction. One instance is created in
ChatConfig.ready() and shared by the consumer and the DeliveryRouter;
nothing else keeps presence state.

Usage:
    registry = PresenceRegistry()
    came_online = registry.connect(user_id, channel_name)
    went_offline = registry.disconnect(user_id, channel_name)
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class PresenceRegistry:
    """
    Thread-safe mapping user_id -> set of connection handles.

    Consumers run on the ASGI event loop while publishers run in sync
    worker threads, so every access goes through one lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._handles: dict[int, set[str]] = {}

    def connect(self, user_id: int, handle: str) -> bool:
        """
        Register a live handle for user_id.

        Returns:
            True if the user had no handles before (came online)
        """
        with self._lock:
            handles = self._handles.setdefault(user_id, set())
            came_online = not handles
            handles.add(handle)
        logger.debug(
            f"User {user_id} connected handle {handle} (came_online={came_online})"
        )
        return came_online

    def disconnect(self, user_id: int, handle: str) -> bool:
        """
        Remove one handle for user_id. Unknown handles are ignored.

        Returns:
            True if this was the user's last handle (went offline)
        """
        with self._lock:
            handles = self._handles.get(user_id)
            if not handles or handle not in handles:
                return False
            handles.discard(handle)
            went_offline = not handles
            if went_offline:
                del self._handles[user_id]
        logger.debug(
            f"User {user_id} disconnected handle {handle} (went_offline={went_offline})"
        )
        return went_offline

    def handles_for(self, user_id: int) -> set[str]:
        with self._lock:
            return set(self._handles.get(user_id, ()))

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return bool(self._handles.get(user_id))

    def online_user_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._handles)

    def clear(self) -> None:
        with self._lock:
            self._handles.clear()
