"""
Tests for bearer-token session authentication.
"""
import pytest
from datetime import datetime, timedelta

from app.errors import AuthError
from app.models import UserSession
from app.services.auth import authenticate, hash_token, issue_session, parse_bearer


pytestmark = pytest.mark.unit


class TestParseBearer:

    def test_valid_header(self):
        assert parse_bearer("Bearer abc123") == "abc123"
        assert parse_bearer("bearer   abc123 ") == "abc123"

    @pytest.mark.parametrize("header", [None, "", "Basic abc123", "Bearer", "Bearer   "])
    def test_rejected(self, header):
        with pytest.raises(AuthError) as exc_info:
            parse_bearer(header)
        assert exc_info.value.status_code == 401
        assert exc_info.value.message == "Unauthorized"


class TestAuthenticate:

    async def test_issued_session_authenticates(self, db_session):
        token, session = await issue_session(db_session, "user-1")

        assert session.token_hash == hash_token(token)
        assert token not in session.token_hash
        assert await authenticate(db_session, token) == "user-1"

    async def test_unknown_token(self, db_session):
        with pytest.raises(AuthError):
            await authenticate(db_session, "never-issued")

    async def test_expired_token(self, db_session):
        db_session.add(UserSession(
            token_hash=hash_token("old"),
            user_id="user-1",
            expires_at=datetime.utcnow() - timedelta(minutes=1),
        ))
        await db_session.commit()

        with pytest.raises(AuthError):
            await authenticate(db_session, "old")

    async def test_revoked_token(self, db_session):
        token, session = await issue_session(db_session, "user-1")
        session.revoked = True
        await db_session.commit()

        with pytest.raises(AuthError):
            await authenticate(db_session, token)
