"""
Database Models

All model classes are re-exported here:
    from okxauto.models import Trade
"""

from okxauto.database import Base  # noqa: F401 (re-exported for tests/conftest.py)
from okxauto.models.trading import Trade

__all__ = [
    "Base",
    "Trade",
]
