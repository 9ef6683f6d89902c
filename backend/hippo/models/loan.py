"""Loan model."""
from sqlalchemy import Column, String, Text, Float, DateTime, Enum as SQLEnum
from sqlalchemy.types import Uuid
from datetime import datetime
import uuid
import enum

from hippo.database import Base


class LoanStatus(str, enum.Enum):
    """Loan status enum."""
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RETURNED = "returned"


# Statuses that count as a currently open borrowing relationship
OPEN_STATUSES = (LoanStatus.ACTIVE, LoanStatus.COMPLETED)

# Statuses shown in borrower/owner/user listings
LISTED_STATUSES = (LoanStatus.ACTIVE, LoanStatus.COMPLETED, LoanStatus.RETURNED)


class Loan(Base):
    """Lending agreement for a physical asset."""

    __tablename__ = "loans"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    # Denormalized item snapshot
    item_id = Column(String(100), nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    item_description = Column(Text, nullable=False)
    item_image_path = Column(String(1024), default="", nullable=False)
    item_value = Column(Float, nullable=False)

    owner_id = Column(String(100), nullable=False, index=True)
    owner_name = Column(String(255), nullable=False)
    borrower_id = Column(String(100), nullable=False, index=True)
    borrower_name = Column(String(255), nullable=False)

    start_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    end_date = Column(DateTime)  # set only when the loan is returned
    expected_return_date = Column(DateTime)

    status = Column(SQLEnum(LoanStatus), default=LoanStatus.ACTIVE, nullable=False)
    notes = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Loan {self.id} item={self.item_id} status={self.status.value}>"
