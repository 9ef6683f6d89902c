"""Conversation and messaging endpoints."""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import List, Optional

from hippo.database import get_db
from hippo.middleware.logging import log_record_ids
from hippo.schemas.conversation import ConversationCreate, ConversationRead, ConversationStatusUpdate
from hippo.schemas.message import (
    MessageCreate,
    MessageRead,
    MarkReadRequest,
    MarkReadResponse,
    UnreadCountResponse,
)
from hippo.services.conversations import ConversationRegistry
from hippo.services.messages import MessageLog
from hippo.services.read_tracking import ReadTracker

router = APIRouter(prefix="/conversations", dependencies=[Depends(log_record_ids)])


@router.post("", response_model=ConversationRead, status_code=status.HTTP_201_CREATED)
async def create_conversation(
    payload: ConversationCreate,
    response: Response,
    db: Session = Depends(get_db)
):
    """
    Open the thread for an item between two parties.

    Returns 201 with the new thread, or 200 with the existing one when the
    same item and pair of parties (in either role order) already has a thread.
    """
    conversation, created = ConversationRegistry(db).create_or_get(**payload.model_dump())
    if not created:
        response.status_code = status.HTTP_200_OK
    return conversation


@router.get("/user/{user_id}", response_model=List[ConversationRead])
async def list_user_conversations(user_id: str, db: Session = Depends(get_db)):
    """Threads the user takes part in, most recently active first."""
    return ConversationRegistry(db).list_for_user(user_id)


@router.get("/find", response_model=Optional[ConversationRead])
async def find_conversation(
    item_id: str = Query(..., alias="itemId"),
    borrower_id: str = Query(..., alias="borrowerId"),
    db: Session = Depends(get_db)
):
    """Thread for the item involving `borrowerId` in either role, or null."""
    return ConversationRegistry(db).find_by_item_and_borrower(item_id, borrower_id)


@router.get("/{conversation_id}", response_model=ConversationRead)
async def get_conversation(conversation_id: str, db: Session = Depends(get_db)):
    return ConversationRegistry(db).get(conversation_id)


@router.get("/{conversation_id}/messages", response_model=List[MessageRead])
async def list_messages(conversation_id: str, db: Session = Depends(get_db)):
    """Messages in chat order (oldest first)."""
    return MessageLog(db).list_for_conversation(conversation_id)


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED
)
async def send_message(
    conversation_id: str,
    payload: MessageCreate,
    db: Session = Depends(get_db)
):
    return MessageLog(db).append(
        conversation_id,
        sender_id=payload.sender_id,
        sender_name=payload.sender_name,
        content=payload.content,
        type=payload.type,
        metadata=payload.metadata
    )


@router.put("/{conversation_id}/read", response_model=MarkReadResponse)
async def mark_read(
    conversation_id: str,
    payload: MarkReadRequest,
    db: Session = Depends(get_db)
):
    """Mark every message sent by the other party as read."""
    updated = ReadTracker(db).mark_read(conversation_id, payload.user_id)
    return MarkReadResponse(success=True, updated=updated)


@router.get("/{conversation_id}/unread", response_model=UnreadCountResponse)
async def unread_count(
    conversation_id: str,
    user_id: str = Query(..., alias="userId"),
    db: Session = Depends(get_db)
):
    registry = ConversationRegistry(db)
    conversation = registry.get(conversation_id)
    return UnreadCountResponse(
        conversation_id=conversation.id,
        user_id=user_id,
        unread_count=registry.unread_count(conversation.id, user_id)
    )


@router.put("/{conversation_id}/status", response_model=ConversationRead)
async def update_conversation_status(
    conversation_id: str,
    payload: ConversationStatusUpdate,
    db: Session = Depends(get_db)
):
    return ConversationRegistry(db).update_status(conversation_id, payload.status)
