"""Loan request/response schemas."""
from pydantic import Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from hippo.models.loan import LoanStatus
from hippo.schemas.base import CamelModel


class LoanCreate(CamelModel):
    """Request to record a new borrowing agreement."""

    item_id: str = Field(..., min_length=1)
    item_name: str = Field(..., min_length=1)
    item_description: str = Field(..., description="Snapshot of the asset description")
    item_image_path: str = Field("", description="Snapshot of the asset's primary image path")
    owner_id: str = Field(..., min_length=1)
    owner_name: str = Field(..., min_length=1)
    borrower_id: str = Field(..., min_length=1)
    borrower_name: str = Field(..., min_length=1)
    item_value: float = Field(..., ge=0, description="Declared value of the item")
    expected_return_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)

    model_config = CamelModel.model_config | {
        "json_schema_extra": {
            "example": {
                "itemId": "asset-42",
                "itemName": "Cordless drill",
                "itemDescription": "18V with two batteries",
                "itemImagePath": "",
                "ownerId": "user-a",
                "ownerName": "Ada",
                "borrowerId": "user-b",
                "borrowerName": "Bea",
                "itemValue": 100,
                "expectedReturnDate": "2026-11-01T12:00:00"
            }
        }
    }


class LoanStatusUpdate(CamelModel):
    """Request to change a loan's status."""

    status: LoanStatus
    notes: Optional[str] = Field(None, max_length=2000)


class LoanRead(CamelModel):
    """Loan as stored."""

    id: UUID
    item_id: str
    item_name: str
    item_description: str
    item_image_path: str
    owner_id: str
    owner_name: str
    borrower_id: str
    borrower_name: str
    item_value: float
    start_date: datetime
    end_date: Optional[datetime] = None
    expected_return_date: Optional[datetime] = None
    status: LoanStatus
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
