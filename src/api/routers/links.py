"""Short link endpoints: creation, public lookup, resolution and deletion."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_current_user,
    get_optional_user,
    get_settings,
)
from core.config import Settings
from models.user import User
from schemas.link import (
    ErrorResponse,
    LinkCreate,
    LinkCreateResponse,
    LinkInfoResponse,
    RedirectRequest,
    RedirectResponse,
)
from services import link_service

router = APIRouter(prefix="/api", tags=["links"])


@router.post(
    "/shorten",
    response_model=LinkCreateResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_link(
    data: LinkCreate,
    current_user: User | None = Depends(get_optional_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> LinkCreateResponse:
    """
    Create a short link.

    Without **customShortId** a random 6-character id is generated. Links expire
    after **expiresIn** days (default 30). A **password** makes resolution require it.
    """
    owner_id = current_user.id if current_user is not None else None
    link = await link_service.create_link(db, owner_id, data)
    return LinkCreateResponse(
        short_id=link.short_id,
        original_url=link.original_url,
        short_url=settings.short_url(link.short_id),
        created_at=link.created_at,
        expires_at=link.expires_at,
        clicks=link.clicks,
        is_password_protected=link.is_password_protected,
    )


@router.get(
    "/url/{short_id}",
    response_model=LinkInfoResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_link_info(
    short_id: str,
    db: AsyncSession = Depends(get_async_session),
) -> LinkInfoResponse:
    """
    Get public metadata for a short link.

    Read-only: does not count as a click. The target URL of a password-protected
    link is not disclosed.
    """
    link = await link_service.get_link(db, short_id)
    return LinkInfoResponse(
        short_id=link.short_id,
        original_url=None if link.is_password_protected else link.original_url,
        created_at=link.created_at,
        expires_at=link.expires_at,
        clicks=link.clicks,
        is_password_protected=link.is_password_protected,
    )


@router.post(
    "/redirect/{short_id}",
    response_model=RedirectResponse,
    responses={
        401: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
    },
)
async def resolve_link(
    short_id: str,
    data: RedirectRequest | None = None,
    db: AsyncSession = Depends(get_async_session),
) -> RedirectResponse:
    """Resolve a short link to its target URL and count the click."""
    password = data.password if data is not None else None
    original_url = await link_service.resolve_link(db, short_id, password)
    return RedirectResponse(original_url=original_url)


@router.delete(
    "/urls/{short_id}",
    status_code=204,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_link(
    short_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete one of the current user's links."""
    await link_service.delete_link(db, current_user.id, short_id)
