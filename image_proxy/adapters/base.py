"""
Base Image Provider

Defines the interface every upstream image-generation adapter implements
and the request/result types that flow through it.
"""

import requests
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any

from ..errors import ConfigurationError, UpstreamError, create_upstream_error
from ..proxy_logger import log_request, log_response, log_error, UpstreamCallTimer


@dataclass(frozen=True)
class GenerationRequest:
    """Validated inbound request"""
    prompt: str
    size: Optional[str] = None
    n: int = 1


@dataclass
class NormalizedResult:
    """Uniform provider output: URLs and/or data URIs in generation order"""
    images: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {"images": list(self.images)}


def parse_count(value: Any, default: int = 1) -> int:
    """Best-effort integer parse of a requested image count"""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        try:
            return int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default


class ImageProvider(ABC):
    """
    Abstract base class for image providers.

    Each provider implements the logic for:
    - Translating a prompt/size/count into its upstream call(s)
    - Normalizing the upstream response into image references
    """

    name = "unknown"
    max_images = 1
    credential_name = "API key"

    def __init__(self, api_key: Optional[str], base_url: str, timeout: float = 120.0):
        self.api_key = api_key or ""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def clamp_count(self, n: Any) -> int:
        """Clamp a requested count to [1, max_images]"""
        return min(max(parse_count(n), 1), self.max_images)

    def require_api_key(self):
        if not self.api_key:
            raise ConfigurationError(
                f"{self.credential_name} not configured",
                field=self.credential_name
            )

    def get_headers(self, content_type: str = "application/json") -> Dict:
        """Build standard headers"""
        headers = {
            "Authorization": f"Bearer {self.api_key}"
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _request(self, method: str, url: str, payload: Optional[Dict] = None,
                 headers: Optional[Dict] = None) -> requests.Response:
        """
        Send one upstream request.

        Raises:
            UpstreamError: on transport failure or non-2xx status
        """
        headers = headers or self.get_headers()
        log_request(method, url, headers=headers, payload=payload)

        try:
            with UpstreamCallTimer(self.name, method) as timer:
                response = requests.request(
                    method, url, headers=headers, json=payload, timeout=self.timeout
                )
        except requests.Timeout:
            raise UpstreamError(
                f"Request timed out after {self.timeout}s", provider=self.name
            )
        except requests.RequestException as e:
            log_error(f"Request to {self.name} failed", e)
            raise UpstreamError(
                f"Could not reach {self.name}: {type(e).__name__}", provider=self.name
            )

        is_success = 200 <= response.status_code < 300
        log_response(
            status_code=response.status_code,
            elapsed=timer.elapsed,
            response_text=None if is_success else response.text,
            success=is_success
        )
        if not is_success:
            raise create_upstream_error(self.name, response)
        return response

    def run(self, request: GenerationRequest) -> NormalizedResult:
        """Generate images for a validated request"""
        return NormalizedResult(self.generate(request.prompt, request.size, request.n))

    @abstractmethod
    def generate(self, prompt: str, size: Optional[str] = None, n: int = 1) -> List[str]:
        """
        Generate images and return normalized image references.

        Raises:
            ConfigurationError, UpstreamError and provider-specific errors
        """
