"""Link model for short-link mappings."""
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, utcnow

if TYPE_CHECKING:
    from models.user import User


class Link(Base):
    """
    A short id mapped to a target URL.

    short_id is unique and never changes after creation. clicks is only ever
    incremented in the database (clicks = clicks + 1), never written from Python.
    password_hash holds a bcrypt hash and is set iff is_password_protected.
    """

    __tablename__ = "links"

    id: Mapped[int] = mapped_column(primary_key=True)
    short_id: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        index=True,
        comment="Public URL-safe alias, e.g. 'aZ3_x9'",
    )
    original_url: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
        index=True,  # Dashboard lists newest first
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    clicks: Mapped[int] = mapped_column(
        Integer,
        default=0,
        server_default="0",
        nullable=False,
    )
    is_password_protected: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        server_default=text("false"),
        nullable=False,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(60),
        nullable=True,
        comment="bcrypt hash of the link password",
    )
    owner_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
        comment="NULL for links created anonymously",
    )

    owner: Mapped["User | None"] = relationship(back_populates="links", lazy="raise")
