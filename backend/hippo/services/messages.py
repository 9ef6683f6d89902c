"""Message log: ordered, append-only history of a conversation."""
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from sqlalchemy.orm import Session

from hippo.middleware.logging import get_logger
from hippo.models.conversation import Conversation
from hippo.models.message import Message, MessageType
from hippo.schemas.message import MessageRead
from hippo.services.record_store import RecordStore

logger = get_logger()


def snapshot(message: Message) -> Dict[str, Any]:
    """JSON copy of a message as cached in a conversation's last_message."""
    return MessageRead.model_validate(message).model_dump(mode="json", by_alias=True)


class MessageLog:
    """Appends messages and keeps the parent conversation's summary in step."""

    def __init__(self, db: Session):
        self.db = db
        self.store = RecordStore(db, Message)
        self.conversations = RecordStore(db, Conversation)

    def _next_timestamp(self, conversation_id) -> datetime:
        # created_at is the ordering key, so it must strictly increase per conversation
        now = datetime.utcnow()
        previous = self.store.max("created_at", {"conversation_id": conversation_id})
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def append(
        self,
        conversation_id,
        sender_id: str,
        sender_name: str,
        content: str,
        type: MessageType = MessageType.TEXT,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Message:
        """
        Add a message to a conversation.

        The message insert and the conversation summary update (last_message,
        updated_at, unread_count) commit together or not at all, so the
        summary never lags the log. The conversation row is locked first, so
        concurrent appends to one thread queue up behind each other.

        Raises:
            NotFoundError: conversation does not exist
        """
        with self.store.atomic():
            conversation = self.conversations.get(conversation_id, for_update=True)
            created_at = self._next_timestamp(conversation.id)

            message = Message(
                conversation_id=conversation.id,
                sender_id=sender_id,
                sender_name=sender_name,
                content=content,
                type=type,
                extra_data=metadata,
                is_read=False,
                created_at=created_at
            )
            self.store.insert(message)

            self.conversations.update_by_id(conversation.id, {
                "last_message": snapshot(message),
                "updated_at": created_at,
                "unread_count": Conversation.unread_count + 1
            })

        logger.info(
            "message_sent",
            message_id=str(message.id),
            conversation_id=str(message.conversation_id),
            sender_id=sender_id,
            type=type.value,
            content_length=len(content)
        )
        return message

    def list_for_conversation(self, conversation_id) -> List[Message]:
        """Messages oldest first; unknown conversations have no messages."""
        key = RecordStore.parse_id(conversation_id)
        if key is None:
            return []
        return self.store.find({"conversation_id": key}, order_by=("created_at", "asc"))
