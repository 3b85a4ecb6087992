from __future__ import annotations

import hashlib
import json
import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import redis
from sqlalchemy import delete, select

from verify_woo.config import Settings
from verify_woo.database import session_scope
from verify_woo.models.otp import OtpEntry

LOGGER = logging.getLogger(__name__)

KEY_PREFIX = "verify_woo_otp_"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_phone(phone: str) -> str:
    return re.sub(r"\D", "", phone or "")


def otp_key(phone: str) -> str:
    digits = normalize_phone(phone)
    return KEY_PREFIX + hashlib.md5(digits.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class OtpRecord:
    code: int
    attempts: int
    issued_at: datetime


class OtpStore(ABC):
    """Expiring storage of one OtpRecord per phone number.

    Each call touches a single key. Callers get no locking across a
    read-then-write sequence.
    """

    @abstractmethod
    def get(self, phone: str) -> OtpRecord | None:
        raise NotImplementedError

    @abstractmethod
    def put(self, phone: str, record: OtpRecord, ttl_seconds: int) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, phone: str) -> None:
        raise NotImplementedError


class DatabaseOtpStore(OtpStore):
    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock

    def purge_expired(self) -> int:
        with session_scope() as session:
            result = session.execute(
                delete(OtpEntry).where(OtpEntry.expires_at <= self._clock())
            )
            return result.rowcount

    def get(self, phone: str) -> OtpRecord | None:
        now = self._clock()
        key = otp_key(phone)
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.expires_at <= now))
            entry = session.execute(
                select(OtpEntry).where(OtpEntry.key == key)
            ).scalar_one_or_none()
            if entry is None:
                return None
            if as_utc(entry.expires_at) <= now:
                session.delete(entry)
                return None
            return OtpRecord(
                code=entry.code,
                attempts=entry.attempts,
                issued_at=as_utc(entry.issued_at),
            )

    def put(self, phone: str, record: OtpRecord, ttl_seconds: int) -> None:
        now = self._clock()
        key = otp_key(phone)
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.key == key))
            session.add(
                OtpEntry(
                    key=key,
                    code=record.code,
                    attempts=record.attempts,
                    issued_at=record.issued_at,
                    expires_at=now + timedelta(seconds=ttl_seconds),
                )
            )

    def delete(self, phone: str) -> None:
        key = otp_key(phone)
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.key == key))


class RedisOtpStore(OtpStore):
    def __init__(self, client) -> None:
        self._redis = client

    def get(self, phone: str) -> OtpRecord | None:
        raw = self._redis.get(otp_key(phone))
        if not raw:
            return None
        try:
            data = json.loads(raw)
            return OtpRecord(
                code=int(data["otp"]),
                attempts=int(data["attempts"]),
                issued_at=datetime.fromtimestamp(float(data["time"]), timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            LOGGER.warning("Discarding malformed OTP record for key %s", otp_key(phone))
            return None

    def put(self, phone: str, record: OtpRecord, ttl_seconds: int) -> None:
        payload = {
            "otp": record.code,
            "attempts": record.attempts,
            "time": record.issued_at.timestamp(),
        }
        self._redis.set(otp_key(phone), json.dumps(payload), ex=max(1, int(ttl_seconds)))

    def delete(self, phone: str) -> None:
        self._redis.delete(otp_key(phone))


class MemoryOtpStore(OtpStore):
    def __init__(self, clock: Clock = utcnow) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[OtpRecord, datetime]] = {}
        self._lock = threading.Lock()

    def get(self, phone: str) -> OtpRecord | None:
        key = otp_key(phone)
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None
            record, expires_at = item
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return record

    def put(self, phone: str, record: OtpRecord, ttl_seconds: int) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl_seconds)
        with self._lock:
            self._entries[otp_key(phone)] = (record, expires_at)

    def delete(self, phone: str) -> None:
        with self._lock:
            self._entries.pop(otp_key(phone), None)


def build_otp_store(settings: Settings) -> OtpStore:
    backend = settings.otp_store
    if backend == "redis":
        if not settings.redis_url:
            raise RuntimeError("REDIS_URL is not configured")
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=3,
            socket_timeout=3,
        )
        LOGGER.info("Using Redis OTP store")
        return RedisOtpStore(client)
    if backend == "memory":
        return MemoryOtpStore()
    if backend != "database":
        raise RuntimeError(f"Unknown OTP store backend: {backend}")
    return DatabaseOtpStore()
