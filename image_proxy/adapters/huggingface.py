"""
Hugging Face Inference Adapter

One POST per image to /models/{model_id}. The endpoint answers with either
raw image bytes or JSON of model-dependent shape; both are handed to the
response normalizer.
"""

from typing import Dict, List, Optional

from .base import ImageProvider
from ..image_utils import normalize_payload, parse_size
from ..proxy_logger import logger


class HuggingFaceImageProvider(ImageProvider):
    """Adapter for the Hugging Face Inference API"""

    name = "huggingface"
    max_images = 4
    credential_name = "HUGGINGFACE_API_KEY"

    def __init__(self, api_key: Optional[str],
                 base_url: str = "https://api-inference.huggingface.co",
                 model_id: str = "stabilityai/stable-diffusion-xl-base-1.0",
                 steps: Optional[int] = None, guidance: Optional[float] = None,
                 timeout: float = 120.0):
        super().__init__(api_key, base_url, timeout)
        self.model_id = model_id
        self.steps = steps
        self.guidance = guidance

    @property
    def endpoint_url(self) -> str:
        return f"{self.base_url}/models/{self.model_id}"

    def build_payload(self, prompt: str, size: Optional[str]) -> Dict:
        parameters = {}
        dimensions = parse_size(size)
        if dimensions:
            parameters["width"] = dimensions.width
            parameters["height"] = dimensions.height
        if self.steps is not None:
            parameters["num_inference_steps"] = self.steps
        if self.guidance is not None:
            parameters["guidance_scale"] = self.guidance

        return {
            "inputs": prompt,
            "options": {"wait_for_model": True},
            "parameters": parameters,
        }

    def generate(self, prompt: str, size: Optional[str] = None, n: int = 1) -> List[str]:
        self.require_api_key()

        payload = self.build_payload(prompt, size)
        headers = self.get_headers()
        headers["Accept"] = "image/png, application/json"

        images = []
        for i in range(self.clamp_count(n)):
            response = self._request("POST", self.endpoint_url, payload, headers=headers)
            content_type = response.headers.get("content-type", "")
            found = normalize_payload(response.content, content_type)
            logger.debug(f"Inference call {i + 1}: {content_type or 'no content-type'}, "
                         f"{len(found)} image(s)")
            images.extend(found)
        return images
