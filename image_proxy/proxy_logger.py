"""
Image Proxy Logging Utilities

One named logger ("image_proxy") shared by the adapters and the server, plus
helpers for upstream call logging. Credential-bearing headers are never
written out.
"""

import time
import logging
from typing import Dict, Optional

PLAIN_FORMAT = "[%(name)s] %(levelname)s - %(message)s"
TIMESTAMP_FORMAT = "%(asctime)s [%(name)s] %(levelname)s - %(message)s"
MAX_LOGGED_BODY = 500

SENSITIVE_HEADER_MARKERS = ("authorization", "token", "api-key", "apikey")

logger = logging.getLogger("image_proxy")

if not logger.handlers:
    _console = logging.StreamHandler()
    _console.setFormatter(logging.Formatter(PLAIN_FORMAT))
    logger.addHandler(_console)
    logger.setLevel(logging.INFO)


def configure_logging(level: str = "INFO", include_timestamp: bool = False) -> int:
    """
    Apply LOG_LEVEL and pick the line format for every attached handler.

    Unknown level names fall back to INFO.

    Returns:
        The numeric level now in effect
    """
    numeric = logging.getLevelName(str(level).upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO
    logger.setLevel(numeric)

    formatter = logging.Formatter(
        TIMESTAMP_FORMAT if include_timestamp else PLAIN_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    for handler in logger.handlers:
        handler.setFormatter(formatter)
    return numeric


class UpstreamCallTimer:
    """Measures one provider round trip; elapsed is readable during the call"""

    def __init__(self, provider: str, method: str):
        self.provider = provider
        self.method = method
        self._started: Optional[float] = None
        self._finished: Optional[float] = None

    @property
    def elapsed(self) -> float:
        if self._started is None:
            return 0.0
        end = self._finished if self._finished is not None else time.monotonic()
        return end - self._started

    def __enter__(self):
        self._started = time.monotonic()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._finished = time.monotonic()
        outcome = "raised " + exc_type.__name__ if exc_type else "returned"
        logger.debug(f"{self.provider} {self.method} {outcome} after {self.elapsed:.2f}s")
        return False


def mask_headers(headers: Optional[Dict] = None) -> Dict:
    """Copy headers with credential-bearing values replaced"""
    return {
        k: "***" if any(marker in k.lower() for marker in SENSITIVE_HEADER_MARKERS) else v
        for k, v in (headers or {}).items()
    }


def _clip(text: str) -> str:
    return text if len(text) <= MAX_LOGGED_BODY else text[:MAX_LOGGED_BODY] + "..."


def log_request(method: str, url: str, headers: Optional[Dict] = None,
                payload: Optional[Dict] = None):
    """Log an outgoing provider request; headers and body only at DEBUG"""
    logger.info(f"-> {method} {url}")
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"   Headers: {mask_headers(headers)}")
        if payload:
            logger.debug(f"   Payload: {_clip(str(payload))}")


def log_response(status_code: int, elapsed: float,
                 response_text: Optional[str] = None, success: bool = True):
    """Log a provider response; failed bodies only at DEBUG"""
    logger.info(f"<- HTTP {status_code} {'ok' if success else 'failed'} ({elapsed:.2f}s)")
    if response_text and logger.isEnabledFor(logging.DEBUG):
        logger.debug(f"   Response: {_clip(response_text)}")


def log_error(message: str, exception: Optional[Exception] = None):
    if exception:
        logger.error(f"{message}: {type(exception).__name__} - {exception}")
    else:
        logger.error(message)
