"""Service layer for short link operations."""
import asyncio
import logging
import re
import secrets
import string
from datetime import UTC, datetime, timedelta
from urllib.parse import urlparse

import bcrypt
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.link import Link
from schemas.link import LinkCreate
from services.exceptions import (
    ConflictError,
    ExpiredError,
    ForbiddenError,
    InvalidPasswordError,
    NotFoundError,
    PasswordRequiredError,
    ShortIdGenerationError,
    ValidationError,
)

logger = logging.getLogger(__name__)

SHORT_ID_ALPHABET = string.ascii_letters + string.digits + "_-"
SHORT_ID_LENGTH = 6
MAX_SHORT_ID_ATTEMPTS = 5
CUSTOM_SHORT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{3,32}$")

DEFAULT_EXPIRATION_DAYS = 30
MAX_EXPIRATION_DAYS = 3650
MAX_URL_LENGTH = 2048

BCRYPT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes; longer input is rejected instead of truncated.
MAX_PASSWORD_BYTES = 72


def generate_short_id(length: int = SHORT_ID_LENGTH) -> str:
    """Generate a random URL-safe short id."""
    return "".join(secrets.choice(SHORT_ID_ALPHABET) for _ in range(length))


def hash_password(password: str) -> str:
    """Hash a link password with a per-password salt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a supplied password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Over-long input or a corrupt stored hash; neither can match.
        return False


def is_expired(link: Link, now: datetime | None = None) -> bool:
    """
    Return True if the link's expiration time has passed.

    Naive datetimes (SQLite does not keep the offset) are treated as UTC.
    """
    now = now or datetime.now(UTC)
    expires_at = link.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at < now


def _validate_original_url(original_url: str | None) -> str:
    original_url = (original_url or "").strip()
    if not original_url:
        raise ValidationError("Original URL is required")
    if len(original_url) > MAX_URL_LENGTH:
        raise ValidationError(f"Original URL must be at most {MAX_URL_LENGTH} characters")
    parsed = urlparse(original_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Original URL must be an absolute http or https URL")
    return original_url


def _validate_expires_in(expires_in: int | None) -> int:
    if expires_in is None:
        return DEFAULT_EXPIRATION_DAYS
    if expires_in < 1:
        raise ValidationError("expiresIn must be a positive number of days")
    if expires_in > MAX_EXPIRATION_DAYS:
        raise ValidationError(f"expiresIn must be at most {MAX_EXPIRATION_DAYS} days")
    return expires_in


async def _insert_link(db: AsyncSession, link: Link) -> bool:
    """
    Insert a link inside a savepoint.

    Returns False if the short id violated the unique constraint; the savepoint
    is rolled back and the rest of the transaction is left intact.
    """
    try:
        async with db.begin_nested():
            db.add(link)
            await db.flush()
    except IntegrityError:
        return False
    return True


async def create_link(
    db: AsyncSession,
    owner_id: int | None,
    data: LinkCreate,
) -> Link:
    """
    Create a new short link.

    Args:
        db: Database session.
        owner_id: ID of the creating user, or None for anonymous links.
        data: Link creation data.

    Returns:
        The persisted Link.

    Raises:
        ValidationError: If the URL, alias, expiration or password is invalid.
        ConflictError: If the custom short id is already in use.
        ShortIdGenerationError: If no free random short id was found.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    original_url = _validate_original_url(data.original_url)
    expires_in = _validate_expires_in(data.expires_in)

    custom_short_id = (data.custom_short_id or "").strip() or None
    if custom_short_id is not None and not CUSTOM_SHORT_ID_PATTERN.match(custom_short_id):
        raise ValidationError(
            "Custom URL must be 3-32 characters of letters, digits, '_' or '-'",
        )

    password_hash = None
    if data.password:
        if len(data.password.encode()) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        # bcrypt is CPU bound; keep it off the event loop.
        password_hash = await asyncio.to_thread(hash_password, data.password)

    created_at = datetime.now(UTC)

    def build(short_id: str) -> Link:
        return Link(
            short_id=short_id,
            original_url=original_url,
            created_at=created_at,
            expires_at=created_at + timedelta(days=expires_in),
            clicks=0,
            is_password_protected=password_hash is not None,
            password_hash=password_hash,
            owner_user_id=owner_id,
        )

    if custom_short_id is not None:
        link = build(custom_short_id)
        if not await _insert_link(db, link):
            raise ConflictError("This custom URL is already in use")
    else:
        for attempt in range(1, MAX_SHORT_ID_ATTEMPTS + 1):
            link = build(generate_short_id())
            if await _insert_link(db, link):
                break
            logger.warning(
                "Generated short id collided (attempt %d of %d)",
                attempt,
                MAX_SHORT_ID_ATTEMPTS,
            )
        else:
            raise ShortIdGenerationError(MAX_SHORT_ID_ATTEMPTS)

    await db.refresh(link)
    logger.info(
        "Created link %s (owner=%s, protected=%s, expires_at=%s)",
        link.short_id,
        owner_id,
        link.is_password_protected,
        link.expires_at.isoformat(),
    )
    return link


async def get_link(db: AsyncSession, short_id: str) -> Link:
    """
    Get a link by its short id without side effects.

    Raises:
        NotFoundError: If no link has this short id.
    """
    result = await db.execute(select(Link).where(Link.short_id == short_id))
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFoundError(short_id)
    return link


async def resolve_link(
    db: AsyncSession,
    short_id: str,
    password: str | None = None,
) -> str:
    """
    Resolve a short id to its original URL and count the click.

    Checks run in order: existence, expiration, then password. Only a fully
    successful resolution increments clicks, and the increment happens in the
    database so concurrent resolutions are not lost.

    Raises:
        NotFoundError: If no link has this short id.
        ExpiredError: If the link has expired (regardless of password).
        PasswordRequiredError: If the link is protected and no password was given.
        InvalidPasswordError: If the password does not match.
    """
    link = await get_link(db, short_id)

    if is_expired(link):
        raise ExpiredError(short_id)

    if link.is_password_protected:
        if not password:
            raise PasswordRequiredError()
        if link.password_hash is None or not await asyncio.to_thread(
            verify_password, password, link.password_hash,
        ):
            logger.info("Rejected password for link %s", short_id)
            raise InvalidPasswordError()

    await db.execute(
        update(Link)
        .where(Link.id == link.id)
        .values(clicks=Link.clicks + 1)
        .execution_options(synchronize_session=False),
    )
    await db.refresh(link)
    return link.original_url


async def list_links_by_owner(db: AsyncSession, owner_id: int) -> list[Link]:
    """Get all links owned by a user, newest first."""
    result = await db.execute(
        select(Link)
        .where(Link.owner_user_id == owner_id)
        .order_by(Link.created_at.desc(), Link.id.desc()),
    )
    return list(result.scalars().all())


async def delete_link(db: AsyncSession, owner_id: int, short_id: str) -> None:
    """
    Delete a link owned by the user.

    Raises:
        NotFoundError: If no link has this short id.
        ForbiddenError: If the link belongs to another user or to nobody.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    link = await get_link(db, short_id)
    if link.owner_user_id != owner_id:
        logger.warning(
            "User %s attempted to delete link %s owned by %s",
            owner_id,
            short_id,
            link.owner_user_id,
        )
        raise ForbiddenError("You do not have permission to delete this URL")

    await db.delete(link)
    await db.flush()
    logger.info("Deleted link %s (owner=%s)", short_id, owner_id)
