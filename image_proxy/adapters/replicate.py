"""
Replicate Predictions Adapter

Asynchronous provider. Each generation call:
1. Lists the model's versions and takes the first one
2. For every requested image, submits a prediction and polls it at a fixed
   interval until it succeeds, fails or runs out of attempts

Predictions run one after another. A failed prediction aborts the whole
call and images from earlier predictions are not returned.
"""

import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .base import ImageProvider
from ..errors import JobFailedError, TimeoutError, UpstreamError
from ..image_utils import normalize_images, parse_size
from ..proxy_logger import logger

TERMINAL_SUCCESS = "succeeded"
# "canceled" is terminal upstream but never produces output
TERMINAL_FAILURE = ("failed", "canceled")


@dataclass(frozen=True)
class ModelVersionRef:
    owner: str
    name: str
    version_id: str


@dataclass
class ProviderJob:
    """Snapshot of a prediction as last reported by the provider"""
    id: str
    status: str
    output: Any = None
    error: Any = None

    @classmethod
    def from_json(cls, data: Dict) -> "ProviderJob":
        return cls(
            id=str(data.get("id", "")),
            status=str(data.get("status", "")).lower(),
            output=data.get("output"),
            error=data.get("error"),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status == TERMINAL_SUCCESS or self.status in TERMINAL_FAILURE

    def images(self) -> List[str]:
        """
        Flatten output into a list of image references.

        Strings are kept, nested lists are walked in order and mappings are
        searched with the response normalizer. Anything else is dropped.
        """
        found: List[str] = []
        _flatten_output(self.output, found)
        return found


def _flatten_output(value: Any, found: List[str]):
    if isinstance(value, str):
        if value:
            found.append(value)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _flatten_output(item, found)
    elif isinstance(value, dict):
        found.extend(normalize_images(value))


class ReplicateImageProvider(ImageProvider):
    """Adapter for the Replicate predictions API"""

    name = "replicate"
    max_images = 6
    credential_name = "REPLICATE_API_TOKEN"

    def __init__(self, api_key: Optional[str], base_url: str = "https://api.replicate.com",
                 model_owner: str = "stability-ai", model_name: str = "sdxl",
                 poll_interval: float = 1.5, max_poll_attempts: int = 80,
                 timeout: float = 120.0):
        super().__init__(api_key, base_url, timeout)
        self.model_owner = model_owner
        self.model_name = model_name
        self.poll_interval = poll_interval
        self.max_poll_attempts = max_poll_attempts

    def resolve_version(self) -> ModelVersionRef:
        """
        Take the first entry of the model's version listing.

        The provider lists newest first in practice; the order is not
        guaranteed and is not re-sorted here.
        """
        url = f"{self.base_url}/v1/models/{self.model_owner}/{self.model_name}/versions"
        data = self._request("GET", url).json() or {}
        results = data.get("results") or []
        first = results[0] if results else None
        if not isinstance(first, dict) or not first.get("id"):
            raise UpstreamError(
                f"No versions available for {self.model_owner}/{self.model_name}",
                provider=self.name
            )
        return ModelVersionRef(self.model_owner, self.model_name, str(first["id"]))

    def build_input(self, prompt: str, size: Optional[str]) -> Dict:
        model_input = {"prompt": prompt}
        dimensions = parse_size(size)
        if dimensions:
            model_input["width"] = dimensions.width
            model_input["height"] = dimensions.height
        return model_input

    def submit(self, version: ModelVersionRef, model_input: Dict) -> ProviderJob:
        payload = {"version": version.version_id, "input": model_input}
        data = self._request("POST", f"{self.base_url}/v1/predictions", payload).json()
        job = ProviderJob.from_json(data or {})
        if not job.id:
            raise UpstreamError("Prediction response carried no id", provider=self.name)
        logger.info(f"Prediction {job.id} submitted ({job.status})")
        return job

    def get_job(self, job_id: str) -> ProviderJob:
        data = self._request("GET", f"{self.base_url}/v1/predictions/{job_id}").json()
        return ProviderJob.from_json(data or {})

    def wait_for(self, job: ProviderJob) -> ProviderJob:
        """
        Poll until the job is terminal.

        Raises:
            JobFailedError: job failed or was canceled
            TimeoutError: max_poll_attempts polls without a terminal status
        """
        attempts = 0
        while not job.is_terminal:
            if attempts >= self.max_poll_attempts:
                raise TimeoutError(job.id, self.max_poll_attempts, self.poll_interval)
            time.sleep(self.poll_interval)
            attempts += 1
            job = self.get_job(job.id)
            logger.debug(f"Prediction {job.id} poll {attempts}: {job.status}")

        if job.status in TERMINAL_FAILURE:
            raise JobFailedError(job.id, job.error or job.status)
        return job

    def generate(self, prompt: str, size: Optional[str] = None, n: int = 1) -> List[str]:
        self.require_api_key()

        version = self.resolve_version()
        model_input = self.build_input(prompt, size)

        images = []
        for _ in range(self.clamp_count(n)):
            job = self.wait_for(self.submit(version, model_input))
            images.extend(job.images())
        return images
