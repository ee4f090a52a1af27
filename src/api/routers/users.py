"""User endpoints for the signed-in user."""
from fastapi import APIRouter, Depends

from api.dependencies import get_current_user
from models.user import User
from schemas.base import CamelModel


router = APIRouter(prefix="/api/users", tags=["users"])


class UserResponse(CamelModel):
    """Response model for user info."""

    id: int
    auth0_id: str
    email: str | None


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    """Get the current authenticated user's info."""
    return current_user
