"""
OpenAI Images Adapter

Synchronous provider: one POST to /v1/images/generations returns every
requested image as either a URL or base64 JSON.
"""

from typing import List, Optional

from .base import ImageProvider
from ..proxy_logger import logger


class OpenAIImageProvider(ImageProvider):
    """Adapter for the OpenAI Images API"""

    name = "openai"
    max_images = 10
    credential_name = "OPENAI_API_KEY"
    default_size = "1024x1024"

    def build_payload(self, prompt: str, size: Optional[str], n: int) -> dict:
        return {
            "prompt": prompt,
            "n": self.clamp_count(n),
            "size": size or self.default_size,
        }

    def generate(self, prompt: str, size: Optional[str] = None, n: int = 1) -> List[str]:
        self.require_api_key()

        payload = self.build_payload(prompt, size, n)
        response = self._request("POST", f"{self.base_url}/v1/images/generations", payload)

        data = response.json() or {}
        items = data.get("data") or []

        images = []
        for item in items:
            if not isinstance(item, dict):
                continue
            if item.get("b64_json"):
                images.append(f"data:image/png;base64,{item['b64_json']}")
            elif item.get("url"):
                images.append(item["url"])

        logger.debug(f"OpenAI returned {len(images)}/{len(items)} usable images")
        return images
