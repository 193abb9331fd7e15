from __future__ import annotations

from dataclasses import dataclass


@dataclass
class TrackingError(Exception):
    """Base failure for the tracking refresh flow. `message` is safe to show to end users."""

    message: str
    code: str = "TRACKING_ERROR"
    status_code: int = 500

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        return {"error": self.message}


@dataclass
class InvalidInputError(TrackingError):
    code: str = "INVALID_INPUT"
    status_code: int = 400


@dataclass
class ConfigurationError(TrackingError):
    code: str = "CONFIGURATION_ERROR"


@dataclass
class ProviderHttpError(TrackingError):
    code: str = "PROVIDER_HTTP_ERROR"
    # None when the request never produced a response (timeout, DNS, refused).
    http_status: int | None = None
    body: str = ""


@dataclass
class ProviderLogicError(TrackingError):
    code: str = "PROVIDER_ERROR"
    provider_message: str = ""


@dataclass
class ProviderQuotaExceededError(ProviderLogicError):
    code: str = "PROVIDER_QUOTA_EXCEEDED"


@dataclass
class StoreError(TrackingError):
    code: str = "STORE_ERROR"


@dataclass
class NotificationError(TrackingError):
    code: str = "NOTIFICATION_ERROR"
