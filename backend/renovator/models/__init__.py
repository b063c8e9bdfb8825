from renovator.models.base import Base, TimestampMixin
from renovator.models.user import User
from renovator.models.session import Session

__all__ = [
    "Base", "TimestampMixin",
    "User",
    "Session",
]
