"""
Chat app: conversations, messages and live delivery.

This app handles:
- Direct and group conversations with their participants
- Messages, soft deletion and read receipts
- Presence of connected users (presence.py)
- Fan-out of live events to their connections (delivery.py, events.py)
- A client-side cache that merges those events (sync.py)

WebSocket Support:
    ChatConsumer (consumers.py) is mounted at ws/chat/ by routing.py and
    authenticated by JWTAuthMiddleware (middleware.py).

Usage:
    from chat.services import ConversationService, MessageService

    conversation, created = ConversationService.find_or_create_direct(ada, bob.pk)
    message = MessageService.append(conversation.pk, ada, text="Hello!")
"""
