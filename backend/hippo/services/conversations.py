"""Conversation registry: one thread per item and pair of parties."""
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple
from sqlalchemy.orm import Session

from hippo.exceptions import ConflictError
from hippo.middleware.logging import get_logger
from hippo.models.conversation import Conversation, ConversationStatus, ordered_parties
from hippo.models.message import Message
from hippo.services.record_store import Ne, RecordStore

logger = get_logger()

# Allowed moves between conversation statuses; archived is terminal
CONVERSATION_TRANSITIONS: Dict[ConversationStatus, FrozenSet[ConversationStatus]] = {
    ConversationStatus.ACTIVE: frozenset({
        ConversationStatus.COMPLETED,
        ConversationStatus.CANCELLED,
        ConversationStatus.ARCHIVED,
    }),
    ConversationStatus.COMPLETED: frozenset({ConversationStatus.ARCHIVED}),
    ConversationStatus.CANCELLED: frozenset({ConversationStatus.ARCHIVED}),
    ConversationStatus.ARCHIVED: frozenset(),
}


class ConversationRegistry:
    """Creates, finds and lists conversation threads."""

    def __init__(self, db: Session):
        self.db = db
        self.store = RecordStore(db, Conversation)

    def _find_for_pair(self, item_id: str, party_a: str, party_b: str) -> Optional[Conversation]:
        return self.store.find_one(
            {"item_id": item_id},
            any_of=[
                {"owner_id": party_a, "borrower_id": party_b},
                {"owner_id": party_b, "borrower_id": party_a},
            ]
        )

    def create_or_get(
        self,
        item_id: str,
        item_name: str,
        owner_id: str,
        owner_name: str,
        borrower_id: str,
        borrower_name: str
    ) -> Tuple[Conversation, bool]:
        """
        Return the thread for this item between the two parties, creating it if needed.

        Role order does not matter: (owner=A, borrower=B) and (owner=B,
        borrower=A) name the same thread. An existing thread is returned
        unchanged.

        Two concurrent callers can both miss the lookup; the unique (item, parties)
        constraint then rejects the second insert and that caller returns the winner's
        thread instead.

        Returns:
            Tuple of (conversation, created)
        """
        existing = self._find_for_pair(item_id, owner_id, borrower_id)
        if existing:
            logger.info("conversation_found", conversation_id=str(existing.id), item_id=item_id)
            return existing, False

        party_low, party_high = ordered_parties(owner_id, borrower_id)
        now = datetime.utcnow()
        conversation = Conversation(
            item_id=item_id,
            item_name=item_name,
            owner_id=owner_id,
            owner_name=owner_name,
            borrower_id=borrower_id,
            borrower_name=borrower_name,
            party_low=party_low,
            party_high=party_high,
            status=ConversationStatus.ACTIVE,
            last_message=None,
            unread_count=0,
            created_at=now,
            updated_at=now
        )

        try:
            self.store.insert(conversation)
        except ConflictError:
            winner = self.store.find_one(
                {"item_id": item_id, "party_low": party_low, "party_high": party_high}
            )
            if winner is None:
                raise
            logger.info("conversation_dedup_race", conversation_id=str(winner.id), item_id=item_id)
            return winner, False

        logger.info(
            "conversation_created",
            conversation_id=str(conversation.id),
            item_id=item_id,
            owner_id=owner_id,
            borrower_id=borrower_id
        )
        return conversation, True

    def list_for_user(self, user_id: str) -> List[Conversation]:
        """Threads where the user is owner or borrower, most recently active first."""
        return self.store.find(
            any_of=[{"owner_id": user_id}, {"borrower_id": user_id}],
            order_by=("updated_at", "desc")
        )

    def get(self, conversation_id) -> Conversation:
        return self.store.get(conversation_id)

    def update_status(self, conversation_id, status: ConversationStatus) -> Conversation:
        """
        Move a conversation to `status`.

        Re-applying the current status only refreshes updated_at.

        Raises:
            NotFoundError: conversation does not exist
            ConflictError: the transition is not allowed from the current status
        """
        conversation = self.store.get(conversation_id)
        current = conversation.status

        if status != current and status not in CONVERSATION_TRANSITIONS[current]:
            raise ConflictError(
                f"Cannot move conversation from {current.value} to {status.value}",
                extra={"from": current.value, "to": status.value}
            )

        conversation = self.store.update_by_id(
            conversation.id,
            {"status": status, "updated_at": datetime.utcnow()}
        )
        logger.info(
            "conversation_status_updated",
            conversation_id=str(conversation.id),
            from_status=current.value,
            to_status=status.value
        )
        return conversation

    def find_by_item_and_borrower(self, item_id: str, borrower_id: str) -> Optional[Conversation]:
        """
        Find a thread for the item involving `borrower_id`.

        The id is matched against either role, so an owner looking up their
        own item also gets a hit. Mobile clients rely on this.
        """
        return self.store.find_one(
            {"item_id": item_id},
            any_of=[{"owner_id": borrower_id}, {"borrower_id": borrower_id}]
        )

    def unread_count(self, conversation_id, user_id: str) -> int:
        """Unread messages in the thread that were sent to `user_id`, counted from the log."""
        conversation = self.store.get(conversation_id)
        return RecordStore(self.db, Message).count({
            "conversation_id": conversation.id,
            "sender_id": Ne(user_id),
            "is_read": False
        })
