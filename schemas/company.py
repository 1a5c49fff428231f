# schemas/company.py
"""
Pydantic schemas for the company profile API.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from models.company import VerificationStatus


class CompanyProfileUpdate(BaseModel):
     """Schema for saving the partner's company profile."""
     name: str = Field(..., min_length=1, max_length=255, description="Agency / company name")
     email: str = Field(..., min_length=3, max_length=255)
     phone: str = Field(..., min_length=1, max_length=50, description="Write-once once set")
     description: Optional[str] = None
     address: Optional[str] = Field(None, max_length=255)
     city: Optional[str] = Field(None, max_length=100)
     country: Optional[str] = Field(None, max_length=100)
     postal_code: Optional[str] = Field(None, max_length=20)
     website: Optional[str] = Field(None, max_length=255)
     tax_id: Optional[str] = Field(None, max_length=100)
     logo: Optional[str] = Field(None, max_length=500)

     model_config = ConfigDict(
          json_schema_extra={
               "example": {
                    "name": "Tirana Car Hire",
                    "email": "hello@tiranacarhire.al",
                    "phone": "+355 69 123 4567",
                    "city": "Tirana",
                    "country": "Albania"
               }
          }
     )


class CompanyResponse(BaseModel):
     id: str
     name: str
     legal_name: Optional[str] = None
     description: Optional[str] = None
     email: Optional[str] = None
     phone: Optional[str] = None
     website: Optional[str] = None
     address: Optional[str] = None
     city: Optional[str] = None
     country: Optional[str] = None
     postal_code: Optional[str] = None
     tax_id: Optional[str] = None
     logo: Optional[str] = None
     owner_id: Optional[str] = None
     available_balance: Decimal
     pending_payout_amount: Decimal
     verification_status: VerificationStatus
     timezone: str
     currency: str
     language: str
     created_at: Optional[datetime] = None
     updated_at: Optional[datetime] = None

     model_config = ConfigDict(from_attributes=True)


class CompanyEnvelope(BaseModel):
     company: Optional[CompanyResponse] = None
     hasMinimalData: bool = False


class CompanyListItem(BaseModel):
     id: str
     name: str

     model_config = ConfigDict(from_attributes=True)


class CompanyListResponse(BaseModel):
     companies: List[CompanyListItem]
