from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String
from .base import Base


class DiscountRecord(Base):
    __tablename__ = "discount"

    code = Column(String(64), primary_key=True)
    kind = Column(String(32), nullable=False)
    value = Column(Numeric(12, 2), nullable=False)
    min_purchase = Column(Numeric(12, 2), nullable=True)
    active_from = Column(DateTime(timezone=True), nullable=False)
    active_until = Column(DateTime(timezone=True), nullable=True)
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    enabled = Column(Boolean, nullable=False, default=True)
