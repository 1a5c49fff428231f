# schemas/payout.py
"""
Pydantic schemas for the payouts API.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict

from models.payout_request import PayoutStatus


class PayoutRequestResponse(BaseModel):
     id: str
     user_id: str
     company_id: Optional[str] = None
     invoice_url: str = ""
     amount: Optional[Decimal] = None
     description: Optional[str] = None
     status: PayoutStatus
     admin_notes: Optional[str] = None
     processed_at: Optional[datetime] = None
     created_at: Optional[datetime] = None
     updated_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True)


class PayoutListResponse(BaseModel):
     payouts: List[PayoutRequestResponse]


class PayoutCreatedResponse(BaseModel):
     """Response for POST /api/payouts."""
     success: bool = True
     payoutId: str
     message: str = "Payout request submitted."

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "success": True,
                    "payoutId": "0f8fad5b-d9cb-469f-a165-70867728950e",
                    "message": "Payout request submitted."
               }
          }
     )


class BalanceResponse(BaseModel):
     availableBalance: Decimal
     pendingPayoutAmount: Decimal


class SignedUrlResponse(BaseModel):
     url: str
     expires_in: int
