from datetime import datetime, timedelta, timezone
import hashlib
import secrets

from sqlalchemy import delete, select, update

from verify_woo.config import settings
from verify_woo.database import session_scope
from verify_woo.models.session import SessionEntry


def _hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class SessionStore:
    def __init__(self, ttl_seconds: int) -> None:
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def create_session(self, user_id: int) -> str:
        now = datetime.now(timezone.utc)
        token = secrets.token_urlsafe(32)
        expires_at = now + timedelta(seconds=self._ttl_seconds)
        with session_scope() as session:
            session.execute(delete(SessionEntry).where(SessionEntry.expires_at <= now))
            session.add(
                SessionEntry(
                    token_hash=_hash_token(token),
                    user_id=user_id,
                    created_at=now,
                    expires_at=expires_at,
                    revoked_at=None,
                )
            )
        return token

    def revoke_session(self, token: str) -> bool:
        now = datetime.now(timezone.utc)
        with session_scope() as session:
            result = session.execute(
                update(SessionEntry)
                .where(
                    SessionEntry.token_hash == _hash_token(token),
                    SessionEntry.revoked_at.is_(None),
                )
                .values(revoked_at=now)
            )
            return result.rowcount > 0

    def get_user_id(self, token: str | None) -> int | None:
        if not token:
            return None
        now = datetime.now(timezone.utc)
        with session_scope() as session:
            result = session.execute(
                select(SessionEntry).where(
                    SessionEntry.token_hash == _hash_token(token),
                    SessionEntry.revoked_at.is_(None),
                    SessionEntry.expires_at > now,
                )
            )
            entry = result.scalar_one_or_none()
            if entry is None:
                return None
            return entry.user_id


session_store = SessionStore(settings.session_ttl_seconds)
