"""
Tests for the anti-forgery nonces guarding the login actions.
"""
import time

import jwt
import pytest

from verify_woo.config import settings
from verify_woo.services.tokens import OTP_NONCE_ACTION, TokenError, create_nonce, verify_nonce


def test_guest_nonce_round_trip():
    nonce = create_nonce(OTP_NONCE_ACTION)

    verify_nonce(nonce, OTP_NONCE_ACTION)


def test_nonce_is_bound_to_session_and_action():
    nonce = create_nonce(OTP_NONCE_ACTION, "session-a")

    verify_nonce(nonce, OTP_NONCE_ACTION, "session-a")
    with pytest.raises(TokenError):
        verify_nonce(nonce, OTP_NONCE_ACTION, "session-b")
    with pytest.raises(TokenError):
        verify_nonce(nonce, OTP_NONCE_ACTION)
    with pytest.raises(TokenError):
        verify_nonce(nonce, "other_action", "session-a")


def test_expired_nonce_is_rejected():
    now = int(time.time())
    nonce = jwt.encode(
        {"sub": "0", "act": OTP_NONCE_ACTION, "type": "nonce", "iat": now - 120, "exp": now - 60},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(TokenError, match="expired"):
        verify_nonce(nonce, OTP_NONCE_ACTION)


def test_token_of_another_type_is_rejected():
    token = jwt.encode(
        {"sub": "0", "act": OTP_NONCE_ACTION, "type": "access"},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )

    with pytest.raises(TokenError, match="type"):
        verify_nonce(token, OTP_NONCE_ACTION)


@pytest.mark.parametrize("token", [None, "", "garbage"])
def test_missing_or_garbage_nonce_is_rejected(token):
    with pytest.raises(TokenError):
        verify_nonce(token, OTP_NONCE_ACTION)
