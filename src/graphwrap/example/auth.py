"""Bearer-token authentication for the publishing API."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException

from ..logging import get_logger
from .store import PublishingStore, User, get_store

logger = get_logger(__name__)


async def get_current_user(
    authorization: str | None = Header(None),
    store: PublishingStore = Depends(get_store),
) -> User:
    """Resolve the caller from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail="Authentication credentials were not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not authorization.startswith("Bearer "):
        logger.warning("Invalid authorization format received")
        raise HTTPException(
            status_code=401,
            detail="Invalid authorization format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = store.user_for_token(authorization[7:])
    if user is None:
        logger.warning("Unknown token provided")
        raise HTTPException(
            status_code=401,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
