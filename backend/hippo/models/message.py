"""Message model."""
from sqlalchemy import Column, String, Text, Boolean, DateTime, ForeignKey, Enum as SQLEnum, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import Uuid
from datetime import datetime
import uuid
import enum

from hippo.database import Base


class MessageType(str, enum.Enum):
    """Message type enum."""
    TEXT = "text"
    IMAGE = "image"
    SYSTEM = "system"
    REQUEST = "request"
    APPROVAL = "approval"
    REJECTION = "rejection"


class Message(Base):
    """Message in a conversation."""

    __tablename__ = "messages"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid(as_uuid=True), ForeignKey("conversations.id"), nullable=False, index=True)
    sender_id = Column(String(100), nullable=False)
    sender_name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    type = Column(SQLEnum(MessageType), default=MessageType.TEXT, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    extra_data = Column("metadata", JSON().with_variant(JSONB(), "postgresql"))  # request/approval payloads
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Message {self.id} type={self.type.value}>"
