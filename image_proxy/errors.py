"""
Image Proxy Error Classes

Provides structured error handling for:
- Configuration errors (missing credentials)
- Request validation errors
- Upstream provider errors (HTTP, job failure, polling timeout)
- Unrecognized upstream response formats

Every error carries the HTTP status the request handler answers with and a
message that is safe to show to callers.
"""

import json
from typing import Optional, Dict, Any, Iterable


class ProxyError(Exception):
    """Base exception for all image proxy errors"""

    http_status = 500

    def __init__(self, message: str, details: Optional[Dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, secrets: Iterable[Optional[str]] = ()) -> Dict:
        """Convert error to an API response body with secrets redacted"""
        return {"error": redact_secrets(self.message, secrets)}


class ConfigurationError(ProxyError):
    """Missing or unusable provider configuration.

    The message never includes the credential itself.
    """

    def __init__(self, message: str = "Image provider is not configured",
                 field: Optional[str] = None):
        self.field = field
        details = {"field": field} if field else {}
        super().__init__(message, details)


class ValidationError(ProxyError):
    """Caller input or deployment mismatch (HTTP 400)"""

    http_status = 400


class UpstreamError(ProxyError):
    """
    Non-2xx response or transport failure talking to a provider.

    Attributes:
        provider: Provider name
        status_code: Upstream HTTP status (0 if the request never completed)
        payload: Parsed upstream error body, if any
    """

    def __init__(self, message: str, provider: str = "unknown",
                 status_code: int = 0, payload: Any = None):
        self.provider = provider
        self.status_code = status_code
        self.payload = payload
        details = {"provider": provider}
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details)

    def __str__(self):
        if self.status_code:
            return f"[{self.provider}] HTTP {self.status_code}: {self.message}"
        return f"[{self.provider}] {self.message}"


class JobFailedError(ProxyError):
    """An asynchronous prediction reached a failed terminal status"""

    def __init__(self, job_id: str, detail: Any = None):
        self.job_id = job_id
        self.detail = detail
        text = detail if isinstance(detail, str) else json.dumps(detail, default=str)
        if detail is None:
            text = "unknown error"
        super().__init__(f"Prediction failed: {text}", {"job_id": job_id})


class TimeoutError(ProxyError):
    """Polling ran out of attempts before the job reached a terminal status"""

    def __init__(self, job_id: str, attempts: int, interval: float):
        self.job_id = job_id
        self.attempts = attempts
        self.interval = interval
        super().__init__(
            f"Prediction timed out after {attempts} polling attempts",
            {"job_id": job_id}
        )


class UnknownResponseFormatError(ProxyError):
    """Inference response was neither image bytes nor JSON"""

    def __init__(self, content_type: str = ""):
        self.content_type = content_type
        super().__init__(
            "Unrecognized response format from inference provider",
            {"content_type": content_type}
        )


def extract_error_message(payload: Any) -> Optional[str]:
    """
    Pull a human-readable message out of a provider error body.

    Tries `error.message`, then a string `error`, then `detail`, then falls
    back to the JSON text of the whole payload.
    """
    if payload is None or payload == "":
        return None

    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        detail = payload.get("detail")
        if isinstance(detail, str) and detail:
            return detail

    if isinstance(payload, str):
        return payload[:500]

    return json.dumps(payload, default=str)[:500]


def create_upstream_error(provider: str, response) -> UpstreamError:
    """
    Factory that turns a non-2xx `requests.Response` into an UpstreamError.
    """
    try:
        payload = response.json()
    except ValueError:
        payload = response.text

    message = extract_error_message(payload) or f"HTTP {response.status_code}"
    return UpstreamError(
        message=message,
        provider=provider,
        status_code=response.status_code,
        payload=payload
    )


def redact_secrets(message: str, secrets: Iterable[Optional[str]]) -> str:
    """Replace every configured secret value occurring in message with ***"""
    for secret in secrets:
        if secret:
            message = message.replace(secret, "***")
    return message
