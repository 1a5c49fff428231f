# models/company.py
import enum
from sqlalchemy import Column, String, Text, Numeric, Enum, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class VerificationStatus(str, enum.Enum):
     """Verification state of a partner company."""
     PENDING = "pending"
     VERIFIED = "verified"
     REJECTED = "rejected"
     SUSPENDED = "suspended"


class Company(TimestampMixin, Base):
     """
     Company model - the business entity a partner owns.

     A company is the unit of balance and resource ownership. At most one
     company exists per owner; this is enforced by `uq_companies_owner_id`
     so that concurrent get-or-create calls cannot produce duplicates.
     `owner_id` and `phone` are write-once (see services.company_service).
     """
     __tablename__ = "companies"
     __table_args__ = (
          UniqueConstraint("owner_id", name="uq_companies_owner_id"),
          CheckConstraint("available_balance >= 0", name="ck_companies_available_balance_non_negative"),
          CheckConstraint("pending_payout_amount >= 0", name="ck_companies_pending_payout_non_negative"),
     )

     id = Column(String(36), primary_key=True, default=generate_uuid)
     name = Column(String(255), nullable=False)
     legal_name = Column(String(255), nullable=True)
     description = Column(Text, nullable=True)

     # Contact
     email = Column(String(255), nullable=True)
     phone = Column(String(50), nullable=True)
     website = Column(String(255), nullable=True)

     # Address
     address = Column(String(255), nullable=True)
     city = Column(String(100), nullable=True)
     country = Column(String(100), nullable=True)
     postal_code = Column(String(20), nullable=True)

     tax_id = Column(String(100), nullable=True)
     logo = Column(String(500), nullable=True)

     # Ownership (nullable until first assignment, then immutable)
     owner_id = Column(String(36), nullable=True, index=True)

     # Balance
     available_balance = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")
     pending_payout_amount = Column(Numeric(12, 2), nullable=False, default=0, server_default="0")

     verification_status = Column(
          Enum(VerificationStatus, name="verification_status", create_constraint=True,
               values_callable=lambda e: [member.value for member in e]),
          default=VerificationStatus.PENDING,
          nullable=False,
     )

     # Locale defaults
     timezone = Column(String(64), default="UTC", nullable=False)
     currency = Column(String(3), default="USD", nullable=False)
     language = Column(String(8), default="en", nullable=False)

     # Relationships
     members = relationship("CompanyMember", back_populates="company", cascade="all, delete-orphan")
     cars = relationship("Car", back_populates="company")
     payout_requests = relationship("PayoutRequest", back_populates="company")

     def __repr__(self):
          return f"<Company(id={self.id}, name='{self.name}', owner_id={self.owner_id})>"

     @property
     def has_minimal_data(self) -> bool:
          """Name, email and phone are all filled in."""
          return all((value or "").strip() for value in (self.name, self.email, self.phone))
