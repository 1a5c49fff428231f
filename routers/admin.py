# routers/admin.py
"""
Admin API. Every route requires a session whose role claim is `admin`.

POST /api/admin/create-user - invite a partner user into a company
GET  /api/admin/companies   - id/name list for the create-user form
"""
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from database import get_session
from dependencies import get_identity_service, get_optional_principal, rate_limited
from exceptions import ValidationError
from schemas.admin import CreateUserRequest, CreateUserResponse
from schemas.auth import Principal
from schemas.company import CompanyListItem, CompanyListResponse
from services.authorization import Action, ensure_allowed
from services.identity_service import IdentityService
from services.provisioning_service import GENERIC_ERROR, create_partner_user, list_companies

router = APIRouter(
     prefix="/api/admin",
     tags=["admin"],
     dependencies=[Depends(rate_limited("api"))],
)


@router.post("/create-user", response_model=CreateUserResponse)
def create_user(
     body: Any = Body(None),
     db: Session = Depends(get_session),
     principal: Principal = Depends(get_optional_principal),
     identity: IdentityService = Depends(get_identity_service),
):
     """
     Invite `email` into `company_id` with member role `role`.

     The body is parsed here rather than by FastAPI so that any malformed
     input gets the same generic 400 as a failed invite.
     """
     ensure_allowed(principal, Action.CREATE_PARTNER_USER)
     if not isinstance(body, dict):
          raise ValidationError(GENERIC_ERROR)
     request = CreateUserRequest.model_validate(body)

     create_partner_user(db, identity, request.email, request.company_id, request.role)
     return CreateUserResponse()


@router.get("/companies", response_model=CompanyListResponse)
def get_companies(
     db: Session = Depends(get_session),
     principal: Principal = Depends(get_optional_principal),
):
     ensure_allowed(principal, Action.LIST_COMPANIES)
     rows = list_companies(db)
     return CompanyListResponse(companies=[CompanyListItem(id=row.id, name=row.name) for row in rows])
