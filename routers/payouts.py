# routers/payouts.py
"""
Payouts API for the signed-in partner.

POST /api/payouts                        - request a payout from the company balance (multipart)
GET  /api/payouts                        - the caller's payout requests, newest first
GET  /api/payouts/balance                - available and pending amounts
GET  /api/payouts/invoice?path=          - stream an invoice the caller uploaded
GET  /api/payouts/invoice/signed-url?path= - time-limited link to the same file
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from azure_blob import SIGNED_URL_TTL_SECONDS, InvoiceStorage, content_type_for, extract_invoice_path, owns_invoice_path
from database import get_session
from dependencies import get_invoice_storage, get_optional_principal, rate_limited
from exceptions import NoCompany, ValidationError
from schemas.auth import Principal
from schemas.payout import (
     BalanceResponse,
     PayoutCreatedResponse,
     PayoutListResponse,
     PayoutRequestResponse,
     SignedUrlResponse,
)
from services.authorization import Action, ensure_allowed, require_principal
from services.company_service import get_company_for_user
from services.payout_service import (
     get_balance,
     list_payout_requests,
     read_invoice_upload,
     submit_payout_from_balance,
)

logger = logging.getLogger(__name__)

router = APIRouter(
     prefix="/api/payouts",
     tags=["payouts"],
     dependencies=[Depends(rate_limited("api"))],
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _authorize_invoice(principal: Optional[Principal], raw_path: Optional[str], container: str) -> str:
     """Storage key for `raw_path` once the caller is known to own it."""
     key = extract_invoice_path(raw_path, container)
     if not key or ".." in key:
          raise ValidationError("Invalid path")
     principal = require_principal(principal)
     owner_id = key.split("/", 1)[0] if owns_invoice_path(principal.id, key) else None
     ensure_allowed(principal, Action.READ_INVOICE, owner_id)
     return key


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("", response_model=PayoutCreatedResponse)
def create_payout(
     amount: str = Form(...),
     description: Optional[str] = Form(None),
     invoice: Optional[UploadFile] = File(None),
     db: Session = Depends(get_session),
     storage: InvoiceStorage = Depends(get_invoice_storage),
     principal: Principal = Depends(get_optional_principal),
):
     """
     Debit the company balance and record a pending payout.

     The invoice is optional; when present it is uploaded first.
     """
     principal = require_principal(principal)
     company = get_company_for_user(db, principal.id)
     if company is None:
          raise NoCompany()
     ensure_allowed(principal, Action.CREATE_PAYOUT, company.owner_id)

     upload = None
     if invoice is not None and invoice.filename:
          upload = read_invoice_upload(invoice.file, invoice.filename, invoice.content_type)

     payout_id = submit_payout_from_balance(db, storage, principal.id, amount, description, upload)
     return PayoutCreatedResponse(payoutId=payout_id)


@router.get("", response_model=PayoutListResponse)
def get_payouts(
     db: Session = Depends(get_session),
     principal: Principal = Depends(get_optional_principal),
):
     principal = require_principal(principal)
     # Rows are selected by the caller's id, so the caller owns every one of them
     ensure_allowed(principal, Action.LIST_PAYOUTS, principal.id)
     payouts = list_payout_requests(db, principal.id)
     return PayoutListResponse(payouts=[PayoutRequestResponse.model_validate(p) for p in payouts])


@router.get("/balance", response_model=BalanceResponse)
def get_company_balance(
     db: Session = Depends(get_session),
     principal: Principal = Depends(get_optional_principal),
):
     principal = require_principal(principal)
     company = get_company_for_user(db, principal.id)
     ensure_allowed(principal, Action.VIEW_BALANCE, company.owner_id if company else principal.id)
     available, pending = get_balance(db, principal.id)
     return BalanceResponse(availableBalance=available, pendingPayoutAmount=pending)


@router.get("/invoice")
def get_invoice(
     path: Optional[str] = Query(None),
     storage: InvoiceStorage = Depends(get_invoice_storage),
     principal: Principal = Depends(get_optional_principal),
):
     """Proxy the file so it can be embedded without exposing the container."""
     key = _authorize_invoice(principal, path, storage.container)
     data = storage.download(key)
     filename = key.rsplit("/", 1)[-1]
     return Response(
          content=data,
          media_type=content_type_for(key),
          headers={
               "Content-Disposition": f'inline; filename="{filename}"',
               "Cache-Control": "private, max-age=3600",
          },
     )


@router.get("/invoice/signed-url", response_model=SignedUrlResponse)
def get_invoice_signed_url(
     path: Optional[str] = Query(None),
     storage: InvoiceStorage = Depends(get_invoice_storage),
     principal: Principal = Depends(get_optional_principal),
):
     key = _authorize_invoice(principal, path, storage.container)
     url = storage.signed_url(key, SIGNED_URL_TTL_SECONDS)
     return SignedUrlResponse(url=url, expires_in=SIGNED_URL_TTL_SECONDS)
