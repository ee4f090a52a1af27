"""Pydantic schemas for link endpoints."""
from datetime import datetime

from pydantic import Field

from schemas.base import CamelModel


class LinkCreate(CamelModel):
    """
    Schema for creating a short link.

    Fields are optional here so that a missing URL is reported as a 400 by the
    service rather than as a schema error.
    """

    original_url: str | None = Field(
        default=None,
        description="The long URL to shorten (http or https).",
    )
    custom_short_id: str | None = Field(
        default=None,
        description="Optional alias, 3-32 characters from A-Z, a-z, 0-9, '_' and '-'.",
    )
    expires_in: int | None = Field(
        default=None,
        description="Days until the link expires. Defaults to 30.",
    )
    password: str | None = Field(
        default=None,
        description="Optional password required to resolve the link.",
    )


class LinkCreateResponse(CamelModel):
    """Response when creating a link."""

    short_id: str
    original_url: str
    short_url: str
    created_at: datetime
    expires_at: datetime
    clicks: int
    is_password_protected: bool


class LinkInfoResponse(CamelModel):
    """
    Public metadata for a link.

    original_url is withheld for password-protected links.
    """

    short_id: str
    original_url: str | None
    created_at: datetime
    expires_at: datetime
    clicks: int
    is_password_protected: bool


class DashboardLinkResponse(CamelModel):
    """A link as shown on its owner's dashboard."""

    short_id: str
    original_url: str
    short_url: str
    created_at: datetime
    expires_at: datetime
    clicks: int
    is_password_protected: bool
    is_expired: bool


class RedirectRequest(CamelModel):
    """Body for resolving a short link."""

    password: str | None = None


class RedirectResponse(CamelModel):
    """Target of a successfully resolved short link."""

    original_url: str


class ErrorResponse(CamelModel):
    """Error body returned for every failed request."""

    error: str
    is_password_protected: bool | None = None
