"""
Pytest configuration and fixtures for Verify Woo tests.

Environment variables are set before the application modules are imported,
so the module-level settings, engine and services pick up the test values.
"""
import os
import pathlib
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

TEST_DIR = pathlib.Path(tempfile.mkdtemp(prefix="verify_woo_tests_"))

os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DIR / 'verify_woo_test.db'}"
os.environ["JWT_SECRET"] = "verify-woo-test-secret-with-enough-length-0123456789"
os.environ["SMS_ACTIVATION"] = "1"
os.environ["SMS_GATEWAY"] = "kavenegar"
os.environ["SMS_GATEWAY_PATTERN"] = ""
os.environ["KAVENEGAR_API_KEY"] = "test-api-key"
os.environ["KAVENEGAR_SENDER_NUMBER"] = "10004346"
os.environ["OTP_STORE"] = "memory"
os.environ["OTP_DEBUG"] = "0"
os.environ["CHECKOUT_REDIRECT"] = "0"
os.environ["OTP_RATE_LIMIT_SECONDS"] = "60"
os.environ["OTP_EXPIRATION_SECONDS"] = "60"
os.environ["OTP_MAX_ATTEMPTS"] = "3"
os.environ["USERNAME_PREFIX"] = "customer_"
os.environ["NEW_USER_ROLE"] = "customer"
os.environ["AUTO_REGISTER_ENABLED"] = "1"
os.environ["MY_ACCOUNT_URL"] = "/my-account/"
os.environ["LOGIN_REDIRECT_URL"] = "/my-account/"
os.environ["CHECKOUT_URL"] = "/checkout/"

from sqlalchemy import delete  # noqa: E402

from verify_woo.config import settings  # noqa: E402
from verify_woo.database import init_db, session_scope  # noqa: E402
from verify_woo.models.otp import OtpEntry  # noqa: E402
from verify_woo.models.session import SessionEntry  # noqa: E402
from verify_woo.models.user import UserEntry  # noqa: E402
from verify_woo.services.hooks import HookRegistry, hooks  # noqa: E402
from verify_woo.services.otp import OtpService  # noqa: E402
from verify_woo.services.otp_store import MemoryOtpStore  # noqa: E402
from verify_woo.services.sessions import session_store  # noqa: E402
from verify_woo.services.sms import SmsFactory, SmsGateway  # noqa: E402
from verify_woo.services.users import IdentityResolver, user_store  # noqa: E402


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class FakeGateway(SmsGateway):
    name = "fake"

    def __init__(self, result: bool = True) -> None:
        self.result = result
        self.sent = []
        self.pattern_sent = []

    def send(self, to, message, options=None):
        self.sent.append((to, message))
        return self.result

    def send_by_pattern(self, to, pattern, data=None, options=None):
        self.pattern_sent.append((to, pattern, dict(data or {})))
        return self.result


class FakeHttpResponse:
    def __init__(self, body: str, status: int = 200) -> None:
        self.status = status
        self._body = body

    def read(self) -> bytes:
        return self._body.encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


class FakeTransport:
    """Stands in for ``urlopen`` in the Kavenegar client."""

    def __init__(self) -> None:
        self.requests = []
        self.body = '{"return": {"status": 200, "message": "OK"}, "entries": [{"messageid": 1}]}'
        self.status = 200
        self.error = None

    def __call__(self, request, timeout=None):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return FakeHttpResponse(self.body, self.status)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    init_db()
    yield


@pytest.fixture(autouse=True)
def clean_state():
    yield
    hooks.clear()
    with session_scope() as session:
        session.execute(delete(OtpEntry))
        session.execute(delete(SessionEntry))
        session.execute(delete(UserEntry))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def registry():
    return HookRegistry()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def factory(gateway):
    return SmsFactory({"kavenegar": lambda credentials: gateway})


@pytest.fixture
def config():
    return replace(
        settings,
        sms_activation=True,
        sms_gateway="kavenegar",
        sms_gateway_pattern="",
        otp_rate_limit_seconds=60,
        otp_expiration_seconds=60,
        otp_max_attempts=3,
        otp_debug=False,
        username_prefix="customer_",
        new_user_role="customer",
        auto_register_enabled=True,
        login_redirect_url="/my-account/",
    )


@pytest.fixture
def store(clock):
    return MemoryOtpStore(clock)


@pytest.fixture
def resolver(registry, config):
    return IdentityResolver(user_store, session_store, registry, config)


@pytest.fixture
def service(store, registry, factory, config, resolver, clock):
    return OtpService(store, registry, factory, config, resolver, clock)


@pytest.fixture
def transport(monkeypatch):
    fake = FakeTransport()
    monkeypatch.setattr("verify_woo.services.kavenegar.urlopen", fake)
    return fake
