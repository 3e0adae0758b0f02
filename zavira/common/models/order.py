from sqlalchemy import Column, DateTime, JSON, Numeric, String, func
from .base import Base


class OrderRecord(Base):
    __tablename__ = "order"

    id = Column(String(36), primary_key=True)
    items = Column(JSON, nullable=False)
    address = Column(JSON, nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)
    shipping_cost = Column(Numeric(12, 2), nullable=False)
    tax = Column(Numeric(12, 2), nullable=False)
    discount_amount = Column(Numeric(12, 2), nullable=False)
    total = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    discount_code = Column(String(64), nullable=True)
    payment_method = Column(String(32), nullable=False)
    status = Column(String(32), nullable=False)
    payment_status = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    paid_at = Column(DateTime(timezone=True), nullable=True)
    external_payment_id = Column(String(128), nullable=True)
