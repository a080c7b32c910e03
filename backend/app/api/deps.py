"""Shared API dependencies."""
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services.auth import authenticate, parse_bearer


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db)
) -> str:
    """Resolve the caller's user id from the Bearer token; 401 otherwise."""
    token = parse_bearer(authorization)
    return await authenticate(db, token)
