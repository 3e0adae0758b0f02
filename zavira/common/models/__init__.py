from .base import Base
from .discount import DiscountRecord
from .order import OrderRecord

__all__ = ["Base", "DiscountRecord", "OrderRecord"]
