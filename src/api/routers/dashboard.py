"""Dashboard endpoints for the signed-in user's links."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.link import DashboardLinkResponse
from services import link_service

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/urls", response_model=list[DashboardLinkResponse])
async def list_my_links(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> list[DashboardLinkResponse]:
    """List the current user's links, newest first."""
    links = await link_service.list_links_by_owner(db, current_user.id)
    return [
        DashboardLinkResponse(
            short_id=link.short_id,
            original_url=link.original_url,
            short_url=settings.short_url(link.short_id),
            created_at=link.created_at,
            expires_at=link.expires_at,
            clicks=link.clicks,
            is_password_protected=link.is_password_protected,
            is_expired=link_service.is_expired(link),
        )
        for link in links
    ]
