"""Conversation model."""
from sqlalchemy import Column, String, Integer, DateTime, Enum as SQLEnum, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import Uuid
from datetime import datetime
from typing import Tuple
import uuid
import enum

from hippo.database import Base


class ConversationStatus(str, enum.Enum):
    """Conversation status enum."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ARCHIVED = "archived"


def ordered_parties(first_party: str, second_party: str) -> Tuple[str, str]:
    """The two parties of a thread in a role-independent order."""
    low, high = sorted((first_party, second_party))
    return low, high


class Conversation(Base):
    """Messaging thread between an item's owner and a borrower."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("item_id", "party_low", "party_high", name="uq_conversations_item_parties"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Denormalized snapshots from the asset and user directories
    item_id = Column(String(100), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    owner_id = Column(String(100), nullable=False, index=True)
    owner_name = Column(String(255), nullable=False)
    borrower_id = Column(String(100), nullable=False, index=True)
    borrower_name = Column(String(255), nullable=False)

    # One thread per (item, {owner, borrower}) regardless of role order
    party_low = Column(String(100), nullable=False)
    party_high = Column(String(100), nullable=False)

    status = Column(SQLEnum(ConversationStatus), default=ConversationStatus.ACTIVE, nullable=False)

    # Summary fields, written in the same transaction as the message log
    last_message = Column(JSON().with_variant(JSONB(), "postgresql"))
    unread_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Conversation {self.id} item={self.item_id} status={self.status.value}>"
