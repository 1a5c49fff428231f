# services/payout_service.py
"""
Payout Service - withdraw from the company balance.

A payout is one database transaction:
1. Debit `companies.available_balance` with a single conditional UPDATE
   (`... WHERE owner_id = :uid AND available_balance >= :amt`)
2. Insert the PENDING payout request
3. Commit both, or roll both back

The conditional UPDATE is the only balance check; there is no read-then-write
window, so concurrent payouts can never drive the balance below zero.
Payouts are not idempotent: two calls create two requests and two debits.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, BinaryIO, List, Optional, Tuple

from sqlalchemy import desc, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from database import classify_db_error
from exceptions import (
     ExceedsBalance,
     InvalidFile,
     NoCompany,
     PortalError,
     UpstreamError,
     UpstreamTimeout,
     ValidationError,
)
from models import Company, PayoutRequest, PayoutStatus
from services.company_service import get_user_company_id

logger = logging.getLogger(__name__)

ALLOWED_INVOICE_TYPES = ("application/pdf", "image/jpeg", "image/jpg", "image/png")
MAX_INVOICE_SIZE = 10 * 1024 * 1024  # 10 MiB

GENERIC_PAYOUT_ERROR = "Unable to create payout. Please check your balance and try again."

# Backend message fragments that may surface to the caller, and the error they become.
PAYOUT_ERROR_ALLOWLIST = (
     ("exceeds available balance", ExceedsBalance),
     ("no company found", NoCompany),
)


@dataclass
class InvoiceUpload:
     filename: str
     content_type: Optional[str]
     data: bytes

     @property
     def size(self) -> int:
          return len(self.data)


def read_invoice_upload(fileobj: BinaryIO, filename: str, content_type: Optional[str]) -> InvoiceUpload:
     """Read at most one byte past the size limit; anything larger is rejected without buffering it all."""
     data = fileobj.read(MAX_INVOICE_SIZE + 1)
     if len(data) > MAX_INVOICE_SIZE:
          raise InvalidFile("File is too large. Maximum size is 10MB.")
     return InvoiceUpload(filename=filename, content_type=content_type, data=data)


def parse_amount(raw: Any) -> Decimal:
     """Positive amount with at most two decimal places."""
     try:
          amount = Decimal(str(raw).strip())
     except (InvalidOperation, ValueError):
          raise ValidationError("Enter a valid amount.")
     if not amount.is_finite() or amount <= 0:
          raise ValidationError("Enter a valid amount.")
     if amount.as_tuple().exponent < -2:
          raise ValidationError("Enter a valid amount.")
     return amount


def map_payout_error(message: Optional[str]) -> PortalError:
     """Typed error for a backend payout failure. Unknown text is never echoed."""
     lowered = (message or "").lower()
     for fragment, error_class in PAYOUT_ERROR_ALLOWLIST:
          if fragment in lowered:
               return error_class(detail=message)
     return UpstreamError(GENERIC_PAYOUT_ERROR, detail=message)


def validate_invoice_file(filename: Optional[str], content_type: Optional[str], size: int) -> None:
     if content_type not in ALLOWED_INVOICE_TYPES:
          raise InvalidFile("Invalid file type. Please upload a PDF, JPG, or PNG file.")
     if size > MAX_INVOICE_SIZE:
          raise InvalidFile("File is too large. Maximum size is 10MB.")
     if not filename:
          raise InvalidFile("Invalid file name.")


def create_payout_from_balance(
     db: Session,
     user_id: str,
     requested_amount: Decimal,
     invoice_key: str = "",
     description: Optional[str] = None,
) -> str:
     """
     Debit the caller's company and record a pending payout request.

     Returns the new payout request id.

     Raises:
          ValidationError: amount is not a positive Decimal
          NoCompany: the caller owns no company
          ExceedsBalance: amount is larger than the available balance
          UpstreamError / UpstreamTimeout: the database failed; nothing was committed
     """
     if not isinstance(requested_amount, Decimal) or not requested_amount.is_finite() or requested_amount <= 0:
          raise ValidationError("Amount must be greater than 0.")

     try:
          result = db.execute(
               update(Company)
               .where(Company.owner_id == user_id, Company.available_balance >= requested_amount)
               .values(available_balance=Company.available_balance - requested_amount)
               .execution_options(synchronize_session="fetch")
          )
          if result.rowcount != 1:
               company_id = get_user_company_id(db, user_id)
               db.rollback()
               if company_id is None:
                    raise NoCompany()
               logger.info("Payout of %s rejected for user=%s: exceeds balance", requested_amount, user_id)
               raise ExceedsBalance()

          company_id = get_user_company_id(db, user_id)
          payout = PayoutRequest(
               user_id=user_id,
               company_id=company_id,
               invoice_url=invoice_key or "",
               amount=requested_amount,
               description=description,
               status=PayoutStatus.PENDING,
          )
          db.add(payout)
          db.flush()
          payout_id = payout.id
          db.commit()
     except PortalError:
          raise
     except DBAPIError as exc:
          db.rollback()
          logger.error("Payout transaction failed for user=%s: %s", user_id, exc)
          error = classify_db_error(exc)
          if isinstance(error, UpstreamTimeout):
               raise error from exc
          raise map_payout_error(error.detail) from exc
     except Exception:
          db.rollback()
          raise

     logger.info("Payout %s created for user=%s amount=%s", payout_id, user_id, requested_amount)
     return payout_id


def submit_payout_from_balance(
     db: Session,
     storage,
     user_id: str,
     amount: Any,
     description: Optional[str] = None,
     upload: Optional[InvoiceUpload] = None,
) -> str:
     """
     Form entry point: validate, upload the optional invoice, then run the payout.

     The upload happens before the transaction. If the transaction fails the
     uploaded file is left in storage and only logged.
     """
     requested_amount = parse_amount(amount)
     description = (description or "").strip() or None

     invoice_key = ""
     if upload is not None and upload.size > 0:
          validate_invoice_file(upload.filename, upload.content_type, upload.size)
          invoice_key = storage.build_invoice_key(user_id, upload.filename)
          storage.upload(invoice_key, upload.data, upload.content_type)

     try:
          return create_payout_from_balance(db, user_id, requested_amount, invoice_key, description)
     except PortalError:
          if invoice_key:
               logger.warning("Payout failed after upload; orphaned invoice %s", invoice_key)
          raise


def list_payout_requests(db: Session, user_id: str) -> List[PayoutRequest]:
     """Caller's payout requests, newest first."""
     return (
          db.query(PayoutRequest)
          .filter(PayoutRequest.user_id == user_id)
          .order_by(desc(PayoutRequest.created_at), desc(PayoutRequest.id))
          .all()
     )


def get_balance(db: Session, user_id: str) -> Tuple[Decimal, Decimal]:
     """(available, pending) for the caller's company; zeros when there is none."""
     row = (
          db.query(Company.available_balance, Company.pending_payout_amount)
          .filter(Company.owner_id == user_id)
          .first()
     )
     if row is None:
          return Decimal("0"), Decimal("0")
     return Decimal(str(row[0] or 0)), Decimal(str(row[1] or 0))
