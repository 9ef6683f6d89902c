"""Message request/response schemas."""
from pydantic import AliasChoices, Field, field_validator
from typing import Any, Dict, Optional
from datetime import datetime
from uuid import UUID

from hippo.models.message import MessageType
from hippo.schemas.base import CamelModel


class MessageCreate(CamelModel):
    """Request to send a message into a conversation."""

    sender_id: str = Field(..., min_length=1, description="ID of the sending user")
    sender_name: str = Field(..., min_length=1, description="Display name of the sender")
    content: str = Field(..., min_length=1, max_length=10000, description="Message body")
    type: MessageType = Field(MessageType.TEXT, description="Message kind")
    metadata: Optional[Dict[str, Any]] = Field(None, description="Type-specific payload")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError("content must not be blank")
        return v

    model_config = CamelModel.model_config | {
        "json_schema_extra": {
            "example": {
                "senderId": "64b7f0c2e1a4",
                "senderName": "Bea",
                "content": "Is the drill still available this weekend?",
                "type": "text"
            }
        }
    }


class MessageRead(CamelModel):
    """Message as stored in the log."""

    id: UUID
    conversation_id: UUID
    sender_id: str
    sender_name: str
    content: str
    type: MessageType
    is_read: bool
    # ORM rows expose the payload as `extra_data`; JSON snapshots use `metadata`
    metadata: Optional[Dict[str, Any]] = Field(
        None,
        validation_alias=AliasChoices("extra_data", "metadata"),
        serialization_alias="metadata"
    )
    created_at: datetime


class MarkReadRequest(CamelModel):
    """Request to mark the other party's messages as read."""

    user_id: str = Field(..., min_length=1, description="ID of the reading user")


class MarkReadResponse(CamelModel):
    """Result of a mark-read call."""

    success: bool = True
    updated: int = Field(0, description="Messages flipped to read by this call")


class UnreadCountResponse(CamelModel):
    """Unread messages waiting for one participant."""

    conversation_id: UUID
    user_id: str
    unread_count: int
