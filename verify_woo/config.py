import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_list(name: str, default: str = "") -> list[str]:
    raw_value = os.getenv(name, default)
    return [item.strip() for item in raw_value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    jwt_secret: str = os.getenv("JWT_SECRET", "")
    jwt_algorithm: str = os.getenv("ALGORITHM", "HS256")
    nonce_ttl_seconds: int = int(os.getenv("NONCE_TTL_SECONDS", "86400"))
    session_ttl_seconds: int = int(os.getenv("SESSION_TTL_SECONDS", "172800"))
    session_cookie_name: str = os.getenv("SESSION_COOKIE_NAME", "verify_woo_session")

    sms_activation: bool = _env_bool("SMS_ACTIVATION", False)
    sms_gateway: str = os.getenv("SMS_GATEWAY", "kavenegar").strip().lower()
    sms_gateway_pattern: str = os.getenv("SMS_GATEWAY_PATTERN", "").strip()
    kavenegar_api_key: str = os.getenv("KAVENEGAR_API_KEY", "")
    kavenegar_sender_number: str = os.getenv("KAVENEGAR_SENDER_NUMBER", "")
    kavenegar_insecure: bool = _env_bool("KAVENEGAR_INSECURE", False)

    otp_rate_limit_seconds: int = int(os.getenv("OTP_RATE_LIMIT_SECONDS", "60"))
    otp_expiration_seconds: int = int(os.getenv("OTP_EXPIRATION_SECONDS", "60"))
    otp_max_attempts: int = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
    otp_store: str = os.getenv("OTP_STORE", "database").strip().lower()
    redis_url: str = os.getenv("REDIS_URL", "")
    otp_debug: bool = _env_bool("OTP_DEBUG", False)

    username_prefix: str = os.getenv("USERNAME_PREFIX", "customer_")
    new_user_role: str = os.getenv("NEW_USER_ROLE", "customer")
    auto_register_enabled: bool = _env_bool("AUTO_REGISTER_ENABLED", True)

    my_account_url: str = os.getenv("MY_ACCOUNT_URL", "/my-account/")
    login_redirect_url: str = os.getenv(
        "LOGIN_REDIRECT_URL", os.getenv("MY_ACCOUNT_URL", "/my-account/")
    )
    checkout_url: str = os.getenv("CHECKOUT_URL", "/checkout/")
    checkout_redirect: bool = _env_bool("CHECKOUT_REDIRECT", False)

    cors_allow_origins: list[str] = field(
        default_factory=lambda: _env_list("CORS_ALLOW_ORIGINS", "http://localhost:5173")
    )
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
