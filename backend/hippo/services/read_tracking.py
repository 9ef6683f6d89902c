"""Read tracking for conversation messages."""
from sqlalchemy.orm import Session

from hippo.middleware.logging import get_logger
from hippo.models.conversation import Conversation
from hippo.models.message import Message
from hippo.services.messages import snapshot
from hippo.services.record_store import Ne, RecordStore

logger = get_logger()


class ReadTracker:
    """Marks the other party's messages as read."""

    def __init__(self, db: Session):
        self.db = db
        self.messages = RecordStore(db, Message)
        self.conversations = RecordStore(db, Conversation)

    def mark_read(self, conversation_id, reader_id: str) -> int:
        """
        Flip is_read on every message in the conversation not sent by `reader_id`.

        The reader's own messages are never touched. Calling it again has no
        further effect. The conversation's unread_count and last_message
        snapshot are refreshed from the log in the same transaction; its
        updated_at is left alone since reading is not activity.

        Returns:
            Number of messages flipped by this call

        Raises:
            NotFoundError: conversation does not exist
        """
        with self.messages.atomic():
            conversation = self.conversations.get(conversation_id, for_update=True)

            updated = self.messages.update_many(
                {"conversation_id": conversation.id, "sender_id": Ne(reader_id), "is_read": False},
                {"is_read": True}
            )

            patch = {
                "unread_count": self.messages.count({"conversation_id": conversation.id, "is_read": False})
            }
            if updated:
                latest = self.messages.find_one(
                    {"conversation_id": conversation.id},
                    order_by=("created_at", "desc")
                )
                if latest is not None:
                    patch["last_message"] = snapshot(latest)
            self.conversations.update_by_id(conversation.id, patch)

        logger.info(
            "messages_marked_read",
            conversation_id=str(conversation.id),
            reader_id=reader_id,
            updated=updated
        )
        return updated
