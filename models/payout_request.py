# models/payout_request.py
"""
PayoutRequest model - a partner's request to withdraw from the company balance.

Rows are created by the payout transaction with status PENDING; approval,
rejection and processing happen in the back office.
"""
import enum
from sqlalchemy import Column, String, Text, Numeric, DateTime, ForeignKey, Enum, CheckConstraint
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class PayoutStatus(str, enum.Enum):
     """Lifecycle status of a payout request."""
     PENDING = "pending"
     APPROVED = "approved"
     CONFIRMED = "confirmed"
     PAID = "paid"
     PROCESSED = "processed"
     REJECTED = "rejected"


class PayoutRequest(TimestampMixin, Base):
     __tablename__ = "payout_requests"
     __table_args__ = (
          CheckConstraint("amount IS NULL OR amount >= 0", name="ck_payout_requests_amount_non_negative"),
     )

     id = Column(String(36), primary_key=True, default=generate_uuid)
     user_id = Column(String(36), nullable=False, index=True)
     company_id = Column(
          String(36),
          ForeignKey("companies.id", ondelete="RESTRICT"),
          nullable=True,
          index=True
     )

     # Storage key of the uploaded invoice, not a public URL; may be empty
     invoice_url = Column(String(500), nullable=False, default="")
     amount = Column(Numeric(12, 2), nullable=True)
     description = Column(Text, nullable=True)
     status = Column(
          Enum(PayoutStatus, name="payout_status", create_constraint=True,
               values_callable=lambda e: [member.value for member in e]),
          default=PayoutStatus.PENDING,
          nullable=False,
          index=True
     )
     admin_notes = Column(Text, nullable=True)
     processed_at = Column(DateTime, nullable=True)

     # Relationships
     company = relationship("Company", back_populates="payout_requests")

     def __repr__(self):
          return f"<PayoutRequest(id={self.id}, amount={self.amount}, status='{self.status.value}')>"
