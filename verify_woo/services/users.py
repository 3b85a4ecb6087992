from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
import re
import secrets
import unicodedata
from typing import Any

from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from verify_woo.config import Settings, settings
from verify_woo.database import session_scope
from verify_woo.models.user import UserEntry
from verify_woo.schemas.users import AccountResponse
from verify_woo.services import hooks as hook_names
from verify_woo.services.errors import AccountCreateError, RegistrationDisabledError
from verify_woo.services.hooks import HookRegistry, hooks
from verify_woo.services.otp_store import normalize_phone
from verify_woo.services.sessions import SessionStore, session_store

LOGGER = logging.getLogger(__name__)

MAX_LOGIN_LENGTH = 60

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def sanitize_username(username: str) -> str:
    """Reduce ``username`` to the characters allowed in a login name."""
    cleaned = re.sub(r"<[^>]*>", "", username or "")
    cleaned = unicodedata.normalize("NFKD", cleaned)
    cleaned = cleaned.encode("ascii", "ignore").decode("ascii")
    cleaned = re.sub(r"%[a-fA-F0-9]{2}", "", cleaned)
    cleaned = re.sub(r"&.+?;", "", cleaned)
    cleaned = re.sub(r"[^a-zA-Z0-9 _.\-@]", "", cleaned)
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip()


def generate_password(length: int = 24) -> str:
    return secrets.token_urlsafe(length)[:length]


def _first_role(role: Any) -> str:
    if isinstance(role, (list, tuple)):
        role = role[0] if role else ""
    return str(role or "").strip()


@dataclass(frozen=True)
class LoginResult:
    user_id: int
    user_login: str
    session_token: str
    created: bool


class UserStore:
    def get_by_login(self, user_login: str) -> UserEntry | None:
        with session_scope() as session:
            return session.execute(
                select(UserEntry).where(UserEntry.user_login == user_login)
            ).scalar_one_or_none()

    def create_user(self, user_data: dict[str, Any], phone_number: str) -> UserEntry:
        user_login = str(user_data.get("user_login") or "").strip()
        if not user_login:
            raise AccountCreateError()
        if len(user_login) > MAX_LOGIN_LENGTH:
            raise AccountCreateError()
        role = _first_role(user_data.get("role"))
        if not role:
            raise AccountCreateError()
        password = str(user_data.get("user_pass") or generate_password())
        now = datetime.now(timezone.utc)
        entry = UserEntry(
            user_login=user_login,
            password_hash=pwd_context.hash(password),
            role=role,
            phone_number=phone_number,
            created_at=now,
            updated_at=now,
        )
        try:
            with session_scope() as session:
                session.add(entry)
                session.flush()
        except IntegrityError as exc:
            LOGGER.error("Failed to create account %s: %s", user_login, exc)
            raise AccountCreateError() from exc
        return entry

    def get_user(self, user_id: int) -> AccountResponse | None:
        with session_scope() as session:
            entry = session.get(UserEntry, user_id)
            if entry is None:
                return None
            return self._to_response(entry)

    def _to_response(self, entry: UserEntry) -> AccountResponse:
        return AccountResponse(
            id=entry.id,
            user_login=entry.user_login,
            role=entry.role,
            phone_number=entry.phone_number,
            created_at=entry.created_at,
        )


class IdentityResolver:
    """Maps a verified phone number to an account and logs it in."""

    def __init__(
        self,
        users: UserStore,
        sessions: SessionStore,
        registry: HookRegistry,
        config: Settings,
    ) -> None:
        self._users = users
        self._sessions = sessions
        self._hooks = registry
        self._settings = config

    def username_for(self, phone: str) -> str:
        digits = normalize_phone(phone)
        prefix = self._hooks.apply_filters(
            hook_names.USERNAME_PREFIX, self._settings.username_prefix, digits
        )
        return sanitize_username(f"{prefix}{digits}")

    def resolve_and_login(self, phone: str) -> LoginResult:
        digits = normalize_phone(phone)
        user_login = self.username_for(phone)

        user = self._users.get_by_login(user_login)
        if user is not None:
            self._hooks.do_action(hook_names.BEFORE_LOGIN_EXISTING_USER, user)
            token = self._sessions.create_session(user.id)
            LOGGER.info("Logged in existing account %s", user.id)
            return LoginResult(user.id, user.user_login, token, created=False)

        allowed = self._hooks.apply_filters(
            hook_names.AUTO_REGISTER_ENABLED, self._settings.auto_register_enabled, phone
        )
        if not allowed:
            LOGGER.info("Auto-registration denied for login %s", user_login)
            raise RegistrationDisabledError()

        role = self._hooks.apply_filters(
            hook_names.NEW_USER_ROLE, self._settings.new_user_role, phone
        )
        user_data = {
            "user_login": user_login,
            "user_pass": generate_password(),
            "role": role,
        }
        user_data = self._hooks.apply_filters(hook_names.NEW_USER_DATA, user_data, phone)

        user = self._users.create_user(user_data, digits)
        self._hooks.do_action(hook_names.AFTER_REGISTER_USER, user.id, phone)
        token = self._sessions.create_session(user.id)
        LOGGER.info("Registered and logged in account %s", user.id)
        return LoginResult(user.id, user.user_login, token, created=True)


user_store = UserStore()
identity_resolver = IdentityResolver(user_store, session_store, hooks, settings)
