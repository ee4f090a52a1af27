"""Authentication module for Auth0 JWT validation and local user resolution."""
import logging
from dataclasses import dataclass

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from db.session import get_async_session
from models.user import User
from services.exceptions import IdentityProviderUnavailableError, UnauthenticatedError

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)

# Cache for JWKS client (reuse across requests)
_jwks_clients: dict[str, PyJWKClient] = {}

DEV_USER_AUTH0_ID = "dev|local-development-user"
DEV_USER_EMAIL = "dev@localhost"


@dataclass(frozen=True)
class ExternalIdentity:
    """Identity asserted by the identity provider for a verified token."""

    subject: str
    email: str | None = None


def get_jwks_client(settings: Settings) -> PyJWKClient:
    """Get or create a cached JWKS client for the given settings."""
    if settings.auth0_jwks_url not in _jwks_clients:
        _jwks_clients[settings.auth0_jwks_url] = PyJWKClient(
            settings.auth0_jwks_url,
            cache_jwk_set=True,
            lifespan=3600,  # Cache keys for 1 hour
        )
    return _jwks_clients[settings.auth0_jwks_url]


def decode_jwt(token: str, settings: Settings) -> dict:
    """
    Decode and validate a JWT token from Auth0.

    Raises:
        UnauthenticatedError: If token is invalid, expired, or has wrong audience/issuer.
        IdentityProviderUnavailableError: If the signing keys cannot be fetched.
    """
    try:
        jwks_client = get_jwks_client(settings)
        signing_key = jwks_client.get_signing_key_from_jwt(token)

        return jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.auth0_audience,
            issuer=settings.auth0_issuer,
        )

    except jwt.ExpiredSignatureError:
        raise UnauthenticatedError("Token has expired")
    except jwt.InvalidAudienceError:
        raise UnauthenticatedError("Invalid audience")
    except jwt.InvalidIssuerError:
        raise UnauthenticatedError("Invalid issuer")
    except jwt.PyJWKClientConnectionError as e:
        logger.error("Failed to fetch JWKS from Auth0: %s", e, exc_info=True)
        raise IdentityProviderUnavailableError()
    except jwt.PyJWTError as e:
        # Log full details for debugging (server-side only)
        logger.warning("JWT validation failed: %s", e, exc_info=True)
        raise UnauthenticatedError("Invalid token")


def authenticate(
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> ExternalIdentity:
    """
    Verify a bearer credential with the identity provider.

    Raises:
        UnauthenticatedError: If the credential is missing, rejected, or has no subject.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Not authenticated")

    payload = decode_jwt(credentials.credentials, settings)

    subject = payload.get("sub")
    if not subject:
        raise UnauthenticatedError("Invalid token: missing sub claim")

    return ExternalIdentity(subject=subject, email=payload.get("email"))


async def _find_user(db: AsyncSession, auth0_id: str) -> User | None:
    result = await db.execute(select(User).where(User.auth0_id == auth0_id))
    return result.scalar_one_or_none()


async def get_or_create_user(
    db: AsyncSession,
    auth0_id: str,
    email: str | None = None,
) -> User:
    """
    Get existing user or create new one from Auth0 claims.

    Handles race conditions where multiple concurrent requests may try to create
    the same user simultaneously. The INSERT runs inside a savepoint; if it hits
    the unique constraint on auth0_id, only the savepoint is rolled back and the
    existing user is fetched.

    Note: Uses flush(), not commit. Session generator handles commit at request end.
    """
    user = await _find_user(db, auth0_id)

    if user is None:
        user = User(auth0_id=auth0_id, email=email)
        try:
            async with db.begin_nested():
                db.add(user)
                await db.flush()
            logger.info("Created local user %s for %s", user.id, auth0_id)
        except IntegrityError:
            # Race condition: another request created the user between our SELECT
            # and INSERT.
            user = await _find_user(db, auth0_id)
            if user is None:
                raise

    # Update email if changed in Auth0 (applies to both existing users and
    # users fetched after race condition recovery)
    if email and user.email != email:
        user.email = email
        await db.flush()

    return user


async def resolve_local_user(db: AsyncSession, identity: ExternalIdentity) -> User:
    """Map a verified external identity to its local user record."""
    return await get_or_create_user(db, auth0_id=identity.subject, email=identity.email)


async def get_or_create_dev_user(db: AsyncSession) -> User:
    """Get or create a development user for DEV_MODE."""
    return await get_or_create_user(
        db,
        auth0_id=DEV_USER_AUTH0_ID,
        email=DEV_USER_EMAIL,
    )


async def _authenticate_user(
    credentials: HTTPAuthorizationCredentials | None,
    db: AsyncSession,
    settings: Settings,
) -> User:
    """
    Internal: authenticate the request and resolve the local user.

    In DEV_MODE, bypasses auth and returns a test user.
    """
    if settings.dev_mode:
        return await get_or_create_dev_user(db)

    identity = authenticate(credentials, settings)
    return await resolve_local_user(db, identity)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency that validates the token and returns the current user."""
    return await _authenticate_user(credentials, db, settings)


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> User | None:
    """
    Dependency for routes that accept anonymous callers.

    Returns None only when ALLOW_ANONYMOUS_LINKS is enabled and no credential was
    sent. A credential that is present must still be valid.
    """
    if credentials is None and settings.allow_anonymous_links and not settings.dev_mode:
        return None
    return await _authenticate_user(credentials, db, settings)
