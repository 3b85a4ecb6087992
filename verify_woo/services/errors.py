from enum import Enum


class OtpErrorCode(str, Enum):
    INVALID_INPUT = "invalid_input"
    DISABLED = "disabled"
    RATE_LIMITED = "rate_limited"
    EXPIRED = "expired"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    INCORRECT = "incorrect"
    REGISTRATION_DISABLED = "registration_disabled"
    CREATE_FAILED = "create_failed"
    CONFIGURATION = "configuration"


GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again later."
UNAVAILABLE_MESSAGE = "Login to the system is currently unavailable."


class OtpError(Exception):
    """Base class for failures of the OTP login flow.

    ``code`` is the machine-readable discriminant sent to clients and
    ``message`` is the text that may be shown to the end user.
    """

    code = OtpErrorCode.INVALID_INPUT
    default_message = GENERIC_FAILURE_MESSAGE

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(OtpError):
    code = OtpErrorCode.INVALID_INPUT
    default_message = "Phone number is required."


class OtpDisabledError(OtpError):
    code = OtpErrorCode.DISABLED
    default_message = UNAVAILABLE_MESSAGE


class RateLimitedError(OtpError):
    code = OtpErrorCode.RATE_LIMITED

    def __init__(self, wait_seconds: int) -> None:
        self.wait_seconds = wait_seconds
        super().__init__(
            f"Please wait {wait_seconds} seconds before trying again."
        )


class OtpExpiredError(OtpError):
    code = OtpErrorCode.EXPIRED
    default_message = "OTP expired. Please request a new one."


class TooManyAttemptsError(OtpError):
    code = OtpErrorCode.TOO_MANY_ATTEMPTS
    default_message = "Too many attempts. Try again later."


class IncorrectOtpError(OtpError):
    code = OtpErrorCode.INCORRECT

    def __init__(self, attempts_left: int) -> None:
        self.attempts_left = attempts_left
        super().__init__("Incorrect OTP. Try again.")


class RegistrationDisabledError(OtpError):
    code = OtpErrorCode.REGISTRATION_DISABLED


class AccountCreateError(OtpError):
    code = OtpErrorCode.CREATE_FAILED
