"""OTP issuance and verification.

Issuing a code rate-limits the phone number, stores a fresh record with an
expiry and dispatches the code through the configured SMS gateway.
Verifying a code checks it against the stored record with a bounded number
of attempts and, on the login path, hands the phone number to the identity
resolver.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
import logging
import math
import secrets

from verify_woo.config import Settings, settings
from verify_woo.services import hooks as hook_names
from verify_woo.services.errors import (
    IncorrectOtpError,
    InvalidInputError,
    OtpDisabledError,
    OtpExpiredError,
    RateLimitedError,
    TooManyAttemptsError,
)
from verify_woo.services.hooks import HookRegistry, hooks
from verify_woo.services.otp_store import (
    Clock,
    OtpRecord,
    OtpStore,
    build_otp_store,
    normalize_phone,
    utcnow,
)
from verify_woo.services.sms import GatewayConfig, SmsFactory, SmsGateway
from verify_woo.services.users import IdentityResolver, LoginResult, identity_resolver

LOGGER = logging.getLogger(__name__)

CODE_MIN = 1000
CODE_MAX = 9999


@dataclass(frozen=True)
class IssuedOtp:
    phone: str
    expires_in: int
    dispatched: bool


@dataclass(frozen=True)
class LoginOutcome:
    login: LoginResult
    redirect_url: str


def generate_code() -> int:
    """Return a uniformly random code in [CODE_MIN, CODE_MAX)."""
    return CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN)


def _as_int(value: object) -> int | None:
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def _elapsed_seconds(now: datetime, issued_at: datetime) -> float:
    return (now - issued_at).total_seconds()


class OtpService:
    def __init__(
        self,
        store: OtpStore,
        registry: HookRegistry,
        factory: SmsFactory,
        config: Settings,
        identity: IdentityResolver,
        clock: Clock = utcnow,
    ) -> None:
        self._store = store
        self._hooks = registry
        self._factory = factory
        self._settings = config
        self._identity = identity
        self._clock = clock

    @property
    def store(self) -> OtpStore:
        return self._store

    def cooldown_seconds(self) -> int:
        return int(
            self._hooks.apply_filters(
                hook_names.OTP_RATE_LIMIT_SECONDS, self._settings.otp_rate_limit_seconds
            )
        )

    def expiration_seconds(self) -> int:
        return int(
            self._hooks.apply_filters(
                hook_names.OTP_EXPIRATION, self._settings.otp_expiration_seconds
            )
        )

    def max_attempts(self) -> int:
        return int(
            self._hooks.apply_filters(
                hook_names.MAX_OTP_ATTEMPTS, self._settings.otp_max_attempts
            )
        )

    def gateway_config(self) -> GatewayConfig:
        return GatewayConfig.from_settings(self._settings)

    def request_otp(self, phone: str | None) -> IssuedOtp:
        config = self.gateway_config()
        if not config.active:
            raise OtpDisabledError()
        if phone is None:
            raise InvalidInputError("Phone number is required.")
        phone = phone.strip()
        if not normalize_phone(phone):
            raise InvalidInputError("Phone number is empty.")

        now = self._clock()
        current = self._store.get(phone)
        if current is not None:
            elapsed = int(_elapsed_seconds(now, current.issued_at))
            cooldown = self.cooldown_seconds()
            if elapsed < cooldown:
                raise RateLimitedError(cooldown - elapsed)

        gateway = self._factory.driver(config.name, config)

        code = generate_code()
        expiration = self.expiration_seconds()
        self._store.put(phone, OtpRecord(code=code, attempts=0, issued_at=now), expiration)

        self._hooks.do_action(hook_names.SEND_OTP_SMS, phone, code)
        if self._settings.otp_debug:
            LOGGER.warning("OTP for %s: %s", phone, code)

        dispatched = self._dispatch(gateway, config, phone, code)
        if not dispatched:
            LOGGER.warning(
                "SMS gateway %s did not deliver the OTP to %s", config.name, phone
            )
        return IssuedOtp(phone=phone, expires_in=expiration, dispatched=dispatched)

    def verify_otp(self, phone: str | None, submitted_code: str | int | None) -> None:
        if not phone or not phone.strip() or not str(submitted_code or "").strip():
            raise InvalidInputError("Phone or OTP is missing.")
        phone = phone.strip()

        record = self._store.get(phone)
        if record is None:
            raise OtpExpiredError()

        max_attempts = self.max_attempts()
        if record.attempts >= max_attempts:
            self._store.delete(phone)
            raise TooManyAttemptsError()

        if _as_int(submitted_code) != record.code:
            attempts = record.attempts + 1
            if attempts >= max_attempts:
                self._store.delete(phone)
                LOGGER.info("OTP attempts exhausted for %s", phone)
                raise TooManyAttemptsError("Incorrect OTP. Maximum attempts reached.")

            # The retry keeps the expiry of the original issuance.
            elapsed = _elapsed_seconds(self._clock(), record.issued_at)
            remaining = math.ceil(self.expiration_seconds() - elapsed)
            if remaining <= 0:
                self._store.delete(phone)
                raise OtpExpiredError()
            self._store.put(phone, replace(record, attempts=attempts), remaining)
            raise IncorrectOtpError(attempts_left=max_attempts - attempts)

        self._store.delete(phone)

    def login(self, phone: str | None, submitted_code: str | int | None) -> LoginOutcome:
        self.verify_otp(phone, submitted_code)
        result = self._identity.resolve_and_login(phone.strip())
        redirect_url = self._hooks.apply_filters(
            hook_names.LOGIN_REDIRECT_URL, self._settings.login_redirect_url
        )
        return LoginOutcome(login=result, redirect_url=str(redirect_url))

    def _dispatch(
        self, gateway: SmsGateway, config: GatewayConfig, phone: str, code: int
    ) -> bool:
        if config.pattern:
            return gateway.send_by_pattern(phone, config.pattern, {"token": str(code)})
        return gateway.send(phone, str(code))


otp_service = OtpService(
    build_otp_store(settings), hooks, SmsFactory(), settings, identity_resolver
)
