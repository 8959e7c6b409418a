"""
Models package: export all SQLAlchemy models.
"""

from lpmarket.models.base import Base
from lpmarket.models.offer import LpOffer
from lpmarket.models.price_history import LpPriceHistory
from lpmarket.models.product import LpProduct

__all__ = ["Base", "LpOffer", "LpPriceHistory", "LpProduct"]
