"""
Tests for resolving SMS gateway drivers by name.
"""
from dataclasses import replace

import pytest

from verify_woo.config import settings
from verify_woo.services.errors import OtpErrorCode, UNAVAILABLE_MESSAGE
from verify_woo.services.kavenegar import KavenegarDriver
from verify_woo.services.sms import (
    DriverInitError,
    GatewayConfig,
    SmsConfigurationError,
    SmsFactory,
    UnsupportedDriverError,
)


def _config(**overrides):
    base = GatewayConfig(
        name="kavenegar",
        active=True,
        credentials={"api_key": "test-api-key", "sender": "10004346", "insecure": False},
    )
    return replace(base, **overrides)


def test_default_registry_resolves_kavenegar(transport):
    factory = SmsFactory()

    driver = factory.driver("Kavenegar ", _config())

    assert isinstance(driver, KavenegarDriver)
    assert factory.supported_drivers == ("kavenegar",)
    assert transport.requests == []


def test_unknown_driver_is_rejected_without_network(transport):
    factory = SmsFactory()

    with pytest.raises(UnsupportedDriverError) as exc_info:
        factory.driver("twilio", _config(name="twilio"))

    assert exc_info.value.driver_name == "twilio"
    assert exc_info.value.code == OtpErrorCode.CONFIGURATION
    assert exc_info.value.message == UNAVAILABLE_MESSAGE
    assert transport.requests == []


def test_driver_construction_failure_is_wrapped():
    factory = SmsFactory()

    with pytest.raises(DriverInitError) as exc_info:
        factory.driver("kavenegar", _config(credentials={"api_key": ""}))

    assert isinstance(exc_info.value, SmsConfigurationError)
    assert "API key" in exc_info.value.reason


def test_driver_must_implement_gateway_interface():
    class NotAGateway:
        def __init__(self, credentials):
            self.credentials = credentials

    factory = SmsFactory({"plain": NotAGateway})

    with pytest.raises(DriverInitError):
        factory.driver("plain", _config(name="plain"))


def test_gateway_config_reads_settings():
    config = GatewayConfig.from_settings(
        replace(
            settings,
            sms_activation=True,
            sms_gateway="kavenegar",
            sms_gateway_pattern="verify-login",
            kavenegar_api_key="key",
            kavenegar_sender_number="3000",
            kavenegar_insecure=True,
        )
    )

    assert config.active is True
    assert config.name == "kavenegar"
    assert config.pattern == "verify-login"
    assert dict(config.credentials) == {"api_key": "key", "sender": "3000", "insecure": True}
