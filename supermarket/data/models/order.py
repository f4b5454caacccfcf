from sqlalchemy import Column, Integer, ForeignKey, String, DateTime, Numeric, Boolean
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from supermarket.data.database import Base

class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    order_number = Column(String(40), nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # NULL = zamowienie goscia

    subtotal = Column(Numeric(10, 2), nullable=False)
    delivery_fee = Column(Numeric(10, 2), nullable=False, default=0)
    total = Column(Numeric(10, 2), nullable=False)

    delivery_method = Column(String(20), nullable=False)
    payment_method = Column(String(20), nullable=False)
    payment_reference = Column(String(100), nullable=True)

    customer_name = Column(String(100), nullable=True)
    customer_email = Column(String(255), nullable=True, index=True)
    customer_phone = Column(String(20), nullable=True)

    paid = Column(Boolean, nullable=False, default=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, processing, completed
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.id",
    )
