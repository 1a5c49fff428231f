# models/company_member.py
"""
CompanyMember model - links an identity to a company with a member role.
Rows are created by admin provisioning, never by the invited user.
"""
import enum
from sqlalchemy import Column, String, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import Base, TimestampMixin, generate_uuid


class CompanyMemberRole(str, enum.Enum):
     OWNER = "owner"
     ADMIN = "admin"
     MEMBER = "member"


class CompanyMember(TimestampMixin, Base):
     __tablename__ = "company_members"
     __table_args__ = (
          UniqueConstraint("company_id", "user_id", name="uq_company_members_company_user"),
     )

     id = Column(String(36), primary_key=True, default=generate_uuid)
     company_id = Column(
          String(36),
          ForeignKey("companies.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     user_id = Column(String(36), nullable=False, index=True)
     role = Column(
          Enum(CompanyMemberRole, name="company_member_role", create_constraint=True,
               values_callable=lambda e: [member.value for member in e]),
          default=CompanyMemberRole.MEMBER,
          nullable=False
     )
     is_active = Column(Boolean, default=True, nullable=False)

     # Relationships
     company = relationship("Company", back_populates="members")

     def __repr__(self):
          return f"<CompanyMember(company_id={self.company_id}, user_id={self.user_id}, role='{self.role.value}')>"
