# routers/company.py
"""
Company profile API for the signed-in partner.

GET /api/company - the caller's company (null if none yet)
PUT /api/company - save the profile; creates the company on first save
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_session
from dependencies import get_optional_principal, rate_limited
from schemas.auth import Principal
from schemas.company import CompanyEnvelope, CompanyProfileUpdate, CompanyResponse
from services.authorization import Action, ensure_allowed, require_principal
from services.company_service import (
     company_has_minimal_data,
     get_company_for_user,
     update_company_profile,
)

router = APIRouter(
     prefix="/api/company",
     tags=["company"],
     dependencies=[Depends(rate_limited("api"))],
)


@router.get("", response_model=CompanyEnvelope)
def get_company(
     db: Session = Depends(get_session),
     principal: Principal = Depends(get_optional_principal),
):
     principal = require_principal(principal)
     company = get_company_for_user(db, principal.id)
     if company is None:
          return CompanyEnvelope(company=None, hasMinimalData=False)

     ensure_allowed(principal, Action.VIEW_COMPANY, company.owner_id)
     return CompanyEnvelope(
          company=CompanyResponse.model_validate(company),
          hasMinimalData=company_has_minimal_data(company),
     )


@router.put("", response_model=CompanyEnvelope)
def put_company(
     body: CompanyProfileUpdate,
     db: Session = Depends(get_session),
     principal: Principal = Depends(get_optional_principal),
):
     """
     Save the profile form.

     `phone` is only written while it is still empty; later values are
     ignored. Name, email and phone are required.
     """
     principal = require_principal(principal)
     existing = get_company_for_user(db, principal.id)
     if existing is not None:
          ensure_allowed(principal, Action.UPDATE_COMPANY, existing.owner_id)

     company = update_company_profile(db, principal.id, principal.email, body)
     ensure_allowed(principal, Action.UPDATE_COMPANY, company.owner_id)
     db.commit()
     return CompanyEnvelope(
          company=CompanyResponse.model_validate(company),
          hasMinimalData=company_has_minimal_data(company),
     )
