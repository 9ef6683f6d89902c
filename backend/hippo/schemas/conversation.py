"""Conversation request/response schemas."""
from pydantic import Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from hippo.models.conversation import ConversationStatus
from hippo.schemas.base import CamelModel
from hippo.schemas.message import MessageRead


class ConversationCreate(CamelModel):
    """Request to open (or reopen) the thread for an item between two parties."""

    item_id: str = Field(..., min_length=1)
    item_name: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    owner_name: str = Field(..., min_length=1)
    borrower_id: str = Field(..., min_length=1)
    borrower_name: str = Field(..., min_length=1)

    model_config = CamelModel.model_config | {
        "json_schema_extra": {
            "example": {
                "itemId": "asset-42",
                "itemName": "Cordless drill",
                "ownerId": "user-a",
                "ownerName": "Ada",
                "borrowerId": "user-b",
                "borrowerName": "Bea"
            }
        }
    }


class ConversationStatusUpdate(CamelModel):
    """Request to move a conversation to another status."""

    status: ConversationStatus


class ConversationRead(CamelModel):
    """Conversation with its summary fields."""

    id: UUID
    item_id: str
    item_name: str
    owner_id: str
    owner_name: str
    borrower_id: str
    borrower_name: str
    status: ConversationStatus
    last_message: Optional[MessageRead] = None
    unread_count: int = 0
    created_at: datetime
    updated_at: datetime
