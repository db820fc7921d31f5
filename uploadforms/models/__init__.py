"""Models - re-exports all models and Base.metadata."""

from .base import Base, CreatedAtMixin, TimestampMixin, UUIDMixin
from .account import User, Account
from .form import Form, Submission

__all__ = [
    "Base",
    "UUIDMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    "User",
    "Account",
    "Form",
    "Submission",
]
