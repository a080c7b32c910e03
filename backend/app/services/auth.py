"""
Session authentication.

Bearer tokens are issued by the external auth provider and stored here only
as SHA-256 digests.
"""
import hashlib
import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import AuthError, UpstreamError
from app.models import UserSession

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def parse_bearer(authorization: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        AuthError: missing header or wrong scheme
    """
    if not authorization:
        raise AuthError()
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthError()
    return token.strip()


async def authenticate(db: AsyncSession, token: str) -> str:
    """
    Resolve a bearer token to its user id.

    Raises:
        AuthError: unknown, expired or revoked token
    """
    try:
        result = await db.execute(
            select(UserSession).where(UserSession.token_hash == hash_token(token))
        )
        session = result.scalar_one_or_none()
    except SQLAlchemyError as e:
        logger.error(f"Session lookup failed: {e}")
        raise UpstreamError("Internal server error", status_code=500)

    if session is None or session.revoked or session.expires_at <= datetime.utcnow():
        raise AuthError()
    return session.user_id


async def issue_session(db: AsyncSession, user_id: str, ttl_hours: int = 24) -> Tuple[str, UserSession]:
    """Create a session for a user; returns the raw token and the stored row."""
    token = secrets.token_urlsafe(32)
    session = UserSession(
        token_hash=hash_token(token),
        user_id=user_id,
        expires_at=datetime.utcnow() + timedelta(hours=ttl_hours),
        revoked=False,
    )
    db.add(session)
    await db.commit()
    return token, session
