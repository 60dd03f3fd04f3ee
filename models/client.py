from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.orm import relationship
from .base import Base, new_uuid


class Client(Base):
     """
     Client model - workshop customers who bring bicycles in for repair.
     """
     __tablename__ = "clients"

     id = Column(String(36), primary_key=True, default=new_uuid)

     # Personal info
     first_name = Column(String(100), nullable=False)
     last_name = Column(String(100), nullable=False, default="")
     tax_id = Column(String(20), nullable=True)  # NIF / CIF
     email = Column(String(255), nullable=True)
     phone = Column(String(50), nullable=True)

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)

     # Relationships
     repair_orders = relationship("RepairOrder", back_populates="client")
     invoices = relationship("Invoice", back_populates="client")

     def __repr__(self):
          return f"<Client(id={self.id}, name='{self.full_name}')>"

     @property
     def full_name(self) -> str:
          return f"{self.first_name or ''} {self.last_name or ''}".strip()
