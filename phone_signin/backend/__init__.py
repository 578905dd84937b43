"""Application backend client."""

from .client import (
    CHECK_PHONE_PATH,
    VERIFY_OTP_PATH,
    ApplicationBackend,
    ApplicationBackendClient,
)
from .models import (
    CheckPhoneResponse,
    Profile,
    VerifyOtpData,
    VerifyOtpResponse,
)

__all__ = [
    "CHECK_PHONE_PATH",
    "VERIFY_OTP_PATH",
    "ApplicationBackend",
    "ApplicationBackendClient",
    "CheckPhoneResponse",
    "Profile",
    "VerifyOtpData",
    "VerifyOtpResponse",
]
