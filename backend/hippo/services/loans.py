"""Loan registry and the loan status state machine."""
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional
from sqlalchemy.orm import Session

from hippo.exceptions import ConflictError, ValidationFailure
from hippo.middleware.logging import get_logger
from hippo.models.loan import Loan, LoanStatus, OPEN_STATUSES, LISTED_STATUSES
from hippo.services.record_store import In, RecordStore

logger = get_logger()

# Moves allowed through set_status; returned and cancelled are terminal.
# Returning goes through mark_returned, which also stamps end_date.
LOAN_TRANSITIONS: Dict[LoanStatus, FrozenSet[LoanStatus]] = {
    LoanStatus.ACTIVE: frozenset({LoanStatus.COMPLETED, LoanStatus.CANCELLED}),
    LoanStatus.COMPLETED: frozenset({LoanStatus.CANCELLED}),
    LoanStatus.RETURNED: frozenset(),
    LoanStatus.CANCELLED: frozenset(),
}

RETURNABLE_STATUSES = OPEN_STATUSES


class LoanRegistry:
    """Records borrowing agreements and tracks their status."""

    def __init__(self, db: Session):
        self.db = db
        self.store = RecordStore(db, Loan)

    def create(
        self,
        item_id: str,
        item_name: str,
        item_description: str,
        item_image_path: str,
        owner_id: str,
        owner_name: str,
        borrower_id: str,
        borrower_name: str,
        item_value: float,
        expected_return_date: Optional[datetime] = None,
        notes: Optional[str] = None
    ) -> Loan:
        """
        Record a new active loan.

        No check is made for an open loan on the same item and borrower;
        callers that care call `find_open` first.
        """
        now = datetime.utcnow()
        loan = Loan(
            item_id=item_id,
            item_name=item_name,
            item_description=item_description,
            item_image_path=item_image_path or "",
            owner_id=owner_id,
            owner_name=owner_name,
            borrower_id=borrower_id,
            borrower_name=borrower_name,
            item_value=item_value,
            start_date=now,
            end_date=None,
            expected_return_date=expected_return_date,
            status=LoanStatus.ACTIVE,
            notes=notes,
            created_at=now,
            updated_at=now
        )
        self.store.insert(loan)

        logger.info(
            "loan_created",
            loan_id=str(loan.id),
            item_id=item_id,
            owner_id=owner_id,
            borrower_id=borrower_id,
            item_value=item_value
        )
        return loan

    def list_by_borrower(self, user_id: str) -> List[Loan]:
        return self.store.find(
            {"borrower_id": user_id, "status": In(LISTED_STATUSES)},
            order_by=("start_date", "desc")
        )

    def list_by_owner(self, user_id: str) -> List[Loan]:
        return self.store.find(
            {"owner_id": user_id, "status": In(LISTED_STATUSES)},
            order_by=("start_date", "desc")
        )

    def list_by_user(self, user_id: str) -> List[Loan]:
        """Loans where the user is borrower or owner. Cancelled loans are hidden."""
        return self.store.find(
            {"status": In(LISTED_STATUSES)},
            any_of=[{"borrower_id": user_id}, {"owner_id": user_id}],
            order_by=("start_date", "desc")
        )

    def get(self, loan_id) -> Loan:
        return self.store.get(loan_id)

    def set_status(self, loan_id, status: LoanStatus, notes: Optional[str] = None) -> Loan:
        """
        Change a loan's status, replacing its notes when `notes` is given.

        Raises:
            NotFoundError: loan does not exist
            ValidationFailure: status is `returned` (use mark_returned)
            ConflictError: the transition is not allowed from the current status
        """
        if status == LoanStatus.RETURNED:
            raise ValidationFailure(
                "Loans are returned through the return operation, which records the end date",
                extra={"status": status.value}
            )

        loan = self.store.get(loan_id)
        current = loan.status
        if status != current and status not in LOAN_TRANSITIONS[current]:
            raise ConflictError(
                f"Cannot move loan from {current.value} to {status.value}",
                extra={"from": current.value, "to": status.value}
            )

        patch = {"status": status, "updated_at": datetime.utcnow()}
        if notes is not None:
            patch["notes"] = notes
        loan = self.store.update_by_id(loan.id, patch)
        logger.info(
            "loan_status_updated",
            loan_id=str(loan.id),
            from_status=current.value,
            to_status=status.value
        )
        return loan

    def mark_returned(self, loan_id) -> Loan:
        """
        Close the loan as returned and stamp its end date.

        Raises:
            NotFoundError: loan does not exist
            ConflictError: loan is already returned or cancelled
        """
        loan = self.store.get(loan_id)
        if loan.status not in RETURNABLE_STATUSES:
            raise ConflictError(
                f"Cannot return a loan that is {loan.status.value}",
                extra={"from": loan.status.value, "to": LoanStatus.RETURNED.value}
            )

        now = datetime.utcnow()
        loan = self.store.update_by_id(loan.id, {
            "status": LoanStatus.RETURNED,
            "end_date": now,
            "updated_at": now
        })
        logger.info("loan_returned", loan_id=str(loan.id), item_id=loan.item_id, borrower_id=loan.borrower_id)
        return loan

    def find_open(self, item_id: str, borrower_id: str) -> Optional[Loan]:
        """Most recent active or completed loan of the item to exactly this borrower."""
        return self.store.find_one(
            {"item_id": item_id, "borrower_id": borrower_id, "status": In(OPEN_STATUSES)},
            order_by=("start_date", "desc")
        )
