from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from verify_woo.config import Settings
from verify_woo.services.errors import OtpError, OtpErrorCode, UNAVAILABLE_MESSAGE

LOGGER = logging.getLogger(__name__)


class SmsConfigurationError(OtpError):
    code = OtpErrorCode.CONFIGURATION
    default_message = UNAVAILABLE_MESSAGE


class UnsupportedDriverError(SmsConfigurationError):
    def __init__(self, driver_name: str) -> None:
        self.driver_name = driver_name
        super().__init__()


class DriverInitError(SmsConfigurationError):
    def __init__(self, driver_name: str, reason: str) -> None:
        self.driver_name = driver_name
        self.reason = reason
        super().__init__()


@dataclass(frozen=True)
class GatewayConfig:
    name: str
    active: bool = False
    credentials: Mapping[str, Any] = field(default_factory=dict)
    pattern: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "GatewayConfig":
        return cls(
            name=settings.sms_gateway,
            active=settings.sms_activation,
            credentials={
                "api_key": settings.kavenegar_api_key,
                "sender": settings.kavenegar_sender_number,
                "insecure": settings.kavenegar_insecure,
            },
            pattern=settings.sms_gateway_pattern,
        )


class SmsGateway(ABC):
    """Transport for OTP messages.

    Implementations report failures through their boolean result and never
    raise transport or provider errors to the caller.
    """

    name: str = ""

    @abstractmethod
    def send(
        self, to: str, message: str, options: Mapping[str, Any] | None = None
    ) -> bool:
        raise NotImplementedError

    @abstractmethod
    def send_by_pattern(
        self,
        to: str,
        pattern: str,
        data: Mapping[str, Any] | None = None,
        options: Mapping[str, Any] | None = None,
    ) -> bool:
        raise NotImplementedError


class SmsFactory:
    def __init__(self, drivers: Mapping[str, type] | None = None) -> None:
        if drivers is None:
            from verify_woo.services.kavenegar import KavenegarDriver

            drivers = {"kavenegar": KavenegarDriver}
        self._drivers = dict(drivers)

    @property
    def supported_drivers(self) -> tuple[str, ...]:
        return tuple(self._drivers)

    def driver(self, name: str, config: GatewayConfig) -> SmsGateway:
        driver_name = (name or "").strip().lower()
        if driver_name not in self._drivers:
            LOGGER.error("SMS driver %r is not supported", name)
            raise UnsupportedDriverError(name)
        return self._create_driver(driver_name, config)

    def _create_driver(self, driver_name: str, config: GatewayConfig) -> SmsGateway:
        driver_class = self._drivers[driver_name]
        try:
            instance = driver_class(config.credentials)
        except (TypeError, ValueError) as exc:
            LOGGER.error("Failed to initialize SMS driver %s: %s", driver_name, exc)
            raise DriverInitError(driver_name, str(exc)) from exc
        if not isinstance(instance, SmsGateway):
            LOGGER.error(
                "SMS driver %s does not implement SmsGateway", driver_class.__name__
            )
            raise DriverInitError(driver_name, "driver does not implement SmsGateway")
        return instance
