"""Loan endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from hippo.database import get_db
from hippo.middleware.logging import log_record_ids
from hippo.schemas.loan import LoanCreate, LoanRead, LoanStatusUpdate
from hippo.services.loans import LoanRegistry

router = APIRouter(prefix="/loans", dependencies=[Depends(log_record_ids)])


@router.post("", response_model=LoanRead, status_code=status.HTTP_201_CREATED)
async def create_loan(payload: LoanCreate, db: Session = Depends(get_db)):
    """
    Record a new active loan.

    Does not check for an open loan on the same item; call
    `GET /loans/find` first to avoid duplicates.
    """
    return LoanRegistry(db).create(**payload.model_dump())


@router.get("/borrower/{user_id}", response_model=List[LoanRead])
async def list_borrower_loans(user_id: str, db: Session = Depends(get_db)):
    return LoanRegistry(db).list_by_borrower(user_id)


@router.get("/owner/{user_id}", response_model=List[LoanRead])
async def list_owner_loans(user_id: str, db: Session = Depends(get_db)):
    return LoanRegistry(db).list_by_owner(user_id)


@router.get("/user/{user_id}", response_model=List[LoanRead])
async def list_user_loans(user_id: str, db: Session = Depends(get_db)):
    """Loans where the user is borrower or owner, newest first."""
    return LoanRegistry(db).list_by_user(user_id)


@router.get("/find", response_model=Optional[LoanRead])
async def find_open_loan(
    item_id: str = Query(..., alias="itemId"),
    borrower_id: str = Query(..., alias="borrowerId"),
    db: Session = Depends(get_db)
):
    """Open (active or completed) loan of the item to this borrower, or null."""
    return LoanRegistry(db).find_open(item_id, borrower_id)


@router.get("/{loan_id}", response_model=LoanRead)
async def get_loan(loan_id: str, db: Session = Depends(get_db)):
    return LoanRegistry(db).get(loan_id)


@router.put("/{loan_id}/status", response_model=LoanRead)
async def update_loan_status(
    loan_id: str,
    payload: LoanStatusUpdate,
    db: Session = Depends(get_db)
):
    return LoanRegistry(db).set_status(loan_id, payload.status, payload.notes)


@router.put("/{loan_id}/return", response_model=LoanRead)
async def return_loan(loan_id: str, db: Session = Depends(get_db)):
    """Mark the loan returned and stamp its end date."""
    return LoanRegistry(db).mark_returned(loan_id)
