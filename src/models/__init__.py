"""SQLAlchemy models."""
from models.base import Base, TimestampMixin
from models.link import Link
from models.user import User

__all__ = ["Base", "Link", "TimestampMixin", "User"]
