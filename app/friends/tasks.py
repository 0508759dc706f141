"""
Celery tasks for friendships.

Scheduled by CELERY_BEAT_SCHEDULE in config/settings.py.
"""

import logging

from celery import shared_task

from friends.services import FriendshipService

logger = logging.getLogger(__name__)


@shared_task
def reconcile_friendships() -> dict:
    """
    Repair asymmetric friendship edges and stale friend requests.

    Returns:
        Counts of repaired edges and removed requests
    """
    result = FriendshipService.reconcile()
    logger.info(f"Friendship reconcile finished: {result}")
    return result
