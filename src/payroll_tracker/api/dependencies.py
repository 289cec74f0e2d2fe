"""FastAPI dependencies for dependency injection."""

import hmac
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_tracker.config import Settings, get_settings
from payroll_tracker.database import init_db


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, session_factory = init_db()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings() -> Settings:
    """Settings dependency, overridable in tests."""
    return get_settings()


async def get_viewer_email(
    x_user_email: Annotated[str | None, Header()] = None
) -> str | None:
    """Email of the signed-in viewer, forwarded by the front end."""
    return x_user_email.strip().lower() if x_user_email else None


async def verify_webhook_secret(
    settings: Annotated[Settings, Depends(get_app_settings)],
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> bool:
    """Whether the caller presented the shared webhook secret.

    Always true when no secret is configured.
    """
    if settings.webhook_secret is None:
        return True
    if x_webhook_secret is None:
        return False
    return hmac.compare_digest(x_webhook_secret.encode(), settings.webhook_secret.encode())


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
ViewerEmail = Annotated[str | None, Depends(get_viewer_email)]
WebhookAuthorized = Annotated[bool, Depends(verify_webhook_secret)]
