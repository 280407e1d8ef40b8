"""FastAPI dependency injection for database, Redis and the calling user."""

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.assessments.autosave import AutosaveScheduler
from src.assessments.drafts import DraftStore
from src.core.logging import user_id_ctx
from src.models.user import User

if TYPE_CHECKING:
    import redis.asyncio as redis


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session from the app's session factory.

    Args:
        request: FastAPI request containing app state.

    Yields:
        AsyncSession for database operations with automatic commit/rollback.
    """
    async with request.app.state.async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_redis(request: Request) -> "redis.Redis":
    """Get Redis connection pool from app state."""
    return request.app.state.redis


async def get_drafts(request: Request) -> DraftStore:
    """Draft buffer backed by the app's Redis pool."""
    return DraftStore(request.app.state.redis)


async def get_autosave(request: Request) -> AutosaveScheduler:
    """Autosave scheduler created in the application lifespan."""
    return request.app.state.autosave


async def get_current_user(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the staff user forwarded by the identity gateway.

    Raises:
        HTTPException: 401 if the header is missing or unknown,
            403 if the account is deactivated.
    """
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    try:
        user_id = int(x_user_id)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user id",
        ) from None

    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown user",
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is deactivated",
        )

    user_id_ctx.set(str(user.id))
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Allow only administrators through.

    Raises:
        HTTPException: 403 for non-admin staff.
    """
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
