import enum
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, Enum, func
from sqlalchemy.orm import relationship
from .base import Base, new_uuid


class RepairOrderStatus(str, enum.Enum):
     """Workflow states of a repair order."""
     RECEIVED = "received"
     IN_PROGRESS = "in_progress"
     COMPLETED = "completed"
     DELIVERED = "delivered"
     CANCELLED = "cancelled"


class RepairOrder(Base):
     """
     Repair order model - work requested on a client's bicycle.

     Completing an order is the billing event that issues its invoice.
     """
     __tablename__ = "repair_orders"

     id = Column(String(36), primary_key=True, default=new_uuid)
     client_id = Column(
          String(36),
          ForeignKey("clients.id", ondelete="RESTRICT"),
          nullable=False,
          index=True
     )

     description = Column(Text, nullable=True)
     estimated_cost = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))  # labour
     status = Column(
          Enum(RepairOrderStatus, name="repair_order_status", create_constraint=True),
          default=RepairOrderStatus.RECEIVED,
          nullable=False,
          index=True
     )

     # Timestamps
     created_at = Column(DateTime, server_default=func.now(), nullable=False)
     completed_at = Column(DateTime, nullable=True)

     # Relationships
     client = relationship("Client", back_populates="repair_orders")
     products = relationship("OrderProduct", back_populates="order", cascade="all, delete-orphan")
     invoice = relationship("Invoice", back_populates="order", uselist=False)

     def __repr__(self):
          return f"<RepairOrder(id={self.id}, status='{self.status.value}')>"

     @property
     def taxable_base(self) -> Decimal:
          """Labour plus every product line, before VAT."""
          labour = Decimal(self.estimated_cost or 0)
          products = sum((Decimal(line.subtotal or 0) for line in self.products), Decimal("0"))
          return (labour + products).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


class OrderProduct(Base):
     """Spare part or product consumed by a repair order."""
     __tablename__ = "order_products"

     id = Column(Integer, primary_key=True, autoincrement=True)
     order_id = Column(
          String(36),
          ForeignKey("repair_orders.id", ondelete="CASCADE"),
          nullable=False,
          index=True
     )
     product_name = Column(String(200), nullable=False)
     quantity = Column(Integer, nullable=False, default=1)
     unit_price = Column(Numeric(12, 2), nullable=False)
     subtotal = Column(Numeric(12, 2), nullable=False)

     order = relationship("RepairOrder", back_populates="products")

     def __repr__(self):
          return f"<OrderProduct(order_id={self.order_id}, product='{self.product_name}', subtotal={self.subtotal})>"

     @staticmethod
     def line_subtotal(quantity: int, unit_price: Decimal) -> Decimal:
          return (Decimal(quantity) * Decimal(unit_price)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
