from datetime import datetime, timedelta, timezone
import hashlib

import jwt

from verify_woo.config import settings

OTP_NONCE_ACTION = "verify_woo_otp_nonce"
GUEST_SUBJECT = "0"


class TokenError(ValueError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _subject_for(session_token: str | None) -> str:
    if not session_token:
        return GUEST_SUBJECT
    return hashlib.sha256(session_token.encode("utf-8")).hexdigest()[:32]


def create_nonce(action: str, session_token: str | None = None) -> str:
    """Issue an anti-forgery token for ``action`` bound to the caller's session."""
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    now = _utcnow()
    expires_at = now + timedelta(seconds=settings.nonce_ttl_seconds)
    payload = {
        "sub": _subject_for(session_token),
        "act": action,
        "type": "nonce",
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_nonce(token: str | None, action: str, session_token: str | None = None) -> None:
    payload = _decode_token(token, expected_type="nonce")
    if payload.get("act") != action:
        raise TokenError("Nonce was issued for a different action")
    if payload.get("sub") != _subject_for(session_token):
        raise TokenError("Nonce was issued for a different session")


def _decode_token(token: str | None, expected_type: str) -> dict:
    if not token:
        raise TokenError("Token is missing")
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
    if payload.get("type") != expected_type:
        raise TokenError("Invalid token type")
    return payload
