"""Named extension points for the OTP login flow.

Filters thread a value through every registered callback and return the
result; actions notify listeners and ignore their return values. Callbacks
run in ascending priority order, then in registration order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from itertools import count
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)

BEFORE_LOGIN_EXISTING_USER = "verify_woo_before_login_existing_user"
AFTER_REGISTER_USER = "verify_woo_after_register_user"
SEND_OTP_SMS = "verify_woo_send_otp_sms"
LOGIN_REDIRECT_URL = "verify_woo_login_redirect_url"
OTP_RATE_LIMIT_SECONDS = "verify_woo_otp_rate_limit_seconds"
OTP_EXPIRATION = "verify_woo_otp_expiration"
MAX_OTP_ATTEMPTS = "verify_woo_max_otp_attempts"
USERNAME_PREFIX = "verify_woo_username_prefix"
AUTO_REGISTER_ENABLED = "verify_woo_auto_register_enabled"
NEW_USER_ROLE = "verify_woo_new_user_role"
NEW_USER_DATA = "verify_woo_new_user_data"

DEFAULT_PRIORITY = 10


@dataclass(frozen=True)
class _Callback:
    priority: int
    sequence: int
    func: Callable[..., Any]


class HookRegistry:
    def __init__(self) -> None:
        self._filters: dict[str, list[_Callback]] = defaultdict(list)
        self._actions: dict[str, list[_Callback]] = defaultdict(list)
        self._sequence = count()

    def add_filter(
        self, name: str, func: Callable[..., Any], priority: int = DEFAULT_PRIORITY
    ) -> None:
        self._register(self._filters, name, func, priority)

    def add_action(
        self, name: str, func: Callable[..., Any], priority: int = DEFAULT_PRIORITY
    ) -> None:
        self._register(self._actions, name, func, priority)

    def remove_filter(self, name: str, func: Callable[..., Any]) -> bool:
        return self._unregister(self._filters, name, func)

    def remove_action(self, name: str, func: Callable[..., Any]) -> bool:
        return self._unregister(self._actions, name, func)

    def has_filter(self, name: str) -> bool:
        return bool(self._filters.get(name))

    def has_action(self, name: str) -> bool:
        return bool(self._actions.get(name))

    def apply_filters(self, name: str, value: Any, *args: Any) -> Any:
        """Pass ``value`` through each filter, with ``args`` as extra context.

        Errors raised by a filter propagate to the caller.
        """
        for callback in list(self._filters.get(name, ())):
            value = callback.func(value, *args)
        return value

    def do_action(self, name: str, *args: Any) -> None:
        """Notify every listener of ``name``.

        A failing listener is logged and the remaining listeners still run.
        """
        for callback in list(self._actions.get(name, ())):
            try:
                callback.func(*args)
            except Exception:
                LOGGER.exception(
                    "Action listener %r failed for hook %s",
                    getattr(callback.func, "__name__", callback.func),
                    name,
                )

    def clear(self) -> None:
        self._filters.clear()
        self._actions.clear()

    def _register(
        self,
        table: dict[str, list[_Callback]],
        name: str,
        func: Callable[..., Any],
        priority: int,
    ) -> None:
        callbacks = table[name]
        callbacks.append(_Callback(priority, next(self._sequence), func))
        callbacks.sort(key=lambda item: (item.priority, item.sequence))

    def _unregister(
        self, table: dict[str, list[_Callback]], name: str, func: Callable[..., Any]
    ) -> bool:
        callbacks = table.get(name)
        if not callbacks:
            return False
        remaining = [item for item in callbacks if item.func is not func]
        table[name] = remaining
        return len(remaining) != len(callbacks)


hooks = HookRegistry()
