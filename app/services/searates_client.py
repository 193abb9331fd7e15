from __future__ import annotations

import logging
from typing import Any

import requests

from app.core.config import settings
from app.schemas.tracking import TrackingRecord
from app.services.tracking_errors import (
    ConfigurationError,
    InvalidInputError,
    ProviderHttpError,
    ProviderLogicError,
    ProviderQuotaExceededError,
)
from app.services.tracking_normalizer import map_tracking_payload

logger = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = "API_KEY_LIMIT_REACHED"
_ERROR_BODY_LIMIT = 400


def _normalize_container_number(container_number: str | None) -> str:
    number = str(container_number or "").strip()
    if not number:
        raise InvalidInputError(message="Container number is required")
    return number


def _error_envelope(response: requests.Response) -> dict[str, Any] | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("status") == "error":
        return body
    return None


def _raise_for_provider_error(envelope: dict[str, Any]) -> None:
    provider_message = str(envelope.get("message") or "Unknown SeaRates error")
    if provider_message == QUOTA_EXCEEDED_MESSAGE:
        logger.warning("searates_quota_exceeded")
        raise ProviderQuotaExceededError(
            message="SeaRates API key limit reached. Please upgrade your plan or wait for quota reset.",
            provider_message=provider_message,
        )
    raise ProviderLogicError(
        message=f"SeaRates error: {provider_message}",
        provider_message=provider_message,
    )


def get_tracking_payload(
    container_number: str,
    *,
    timeout_seconds: float | None = None,
    api_key: str | None = None,
    base_url: str | None = None,
) -> dict[str, Any]:
    """Raw provider payload for one container; provider failures are raised, not returned."""
    number = _normalize_container_number(container_number)
    key = (api_key if api_key is not None else settings.SEARATES_API_KEY).strip()
    if not key:
        raise ConfigurationError(
            message="SEARATES_API_KEY is not configured. Add it to your .env file."
        )

    url = (base_url or settings.SEARATES_BASE_URL).rstrip("/")
    params = {"api_key": key, "number": number, "route": "true", "ais": "true"}
    timeout = timeout_seconds if timeout_seconds is not None else settings.SEARATES_TIMEOUT_SECONDS

    try:
        response = requests.get(url, params=params, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("searates_request_failed container=%s error=%s", number, exc)
        raise ProviderHttpError(
            message="SeaRates request failed: tracking service unreachable.",
        ) from exc

    if not response.ok:
        envelope = _error_envelope(response)
        if envelope is not None and envelope.get("message") == QUOTA_EXCEEDED_MESSAGE:
            _raise_for_provider_error(envelope)
        body = response.text[:_ERROR_BODY_LIMIT]
        logger.warning(
            "searates_http_error container=%s status=%s body=%s",
            number,
            response.status_code,
            body,
        )
        raise ProviderHttpError(
            message=f"SeaRates HTTP {response.status_code}: {body}",
            http_status=response.status_code,
            body=body,
        )

    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderLogicError(message="SeaRates returned invalid JSON.") from exc
    if not isinstance(payload, dict):
        raise ProviderLogicError(message="SeaRates returned a non-object JSON payload.")

    if payload.get("status") == "error":
        _raise_for_provider_error(payload)
    return payload


def fetch_tracking(
    container_number: str,
    *,
    timeout_seconds: float | None = None,
) -> TrackingRecord:
    payload = get_tracking_payload(container_number, timeout_seconds=timeout_seconds)
    return map_tracking_payload(payload)
