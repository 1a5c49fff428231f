# models/car.py
"""
Car model - only the columns needed to link a legacy owner to a company.
Car management itself lives outside this service.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from .base import Base, generate_uuid


class Car(Base):
     __tablename__ = "cars"

     id = Column(String(36), primary_key=True, default=generate_uuid)
     company_id = Column(String(36), ForeignKey("companies.id"), nullable=True, index=True)
     owner_id = Column(String(36), nullable=True, index=True)
     name = Column(String(255), nullable=True)
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     company = relationship("Company", back_populates="cars")

     def __repr__(self):
          return f"<Car(id={self.id}, company_id={self.company_id})>"
