"""Pydantic schemas for request/response validation."""
from hippo.schemas.conversation import ConversationCreate, ConversationRead, ConversationStatusUpdate
from hippo.schemas.message import (
    MessageCreate,
    MessageRead,
    MarkReadRequest,
    MarkReadResponse,
    UnreadCountResponse,
)
from hippo.schemas.loan import LoanCreate, LoanRead, LoanStatusUpdate

__all__ = [
    "ConversationCreate",
    "ConversationRead",
    "ConversationStatusUpdate",
    "MessageCreate",
    "MessageRead",
    "MarkReadRequest",
    "MarkReadResponse",
    "UnreadCountResponse",
    "LoanCreate",
    "LoanRead",
    "LoanStatusUpdate",
]
