"""
Image Provider Module

Provides a unified interface over the supported upstream image APIs.
Exactly one provider is active per process, chosen from configuration.
"""

from .base import ImageProvider, GenerationRequest, NormalizedResult, parse_count
from .openai import OpenAIImageProvider
from .replicate import ReplicateImageProvider, ProviderJob, ModelVersionRef
from .huggingface import HuggingFaceImageProvider
from ..errors import ValidationError


def create_provider(config) -> ImageProvider:
    """
    Build the provider named by config.provider.

    Raises:
        ValidationError: provider name is not supported
    """
    if config.provider == "openai":
        return OpenAIImageProvider(
            config.openai_api_key,
            config.openai_base_url,
            timeout=config.request_timeout
        )
    if config.provider == "replicate":
        return ReplicateImageProvider(
            config.replicate_api_token,
            base_url=config.replicate_base_url,
            model_owner=config.replicate_model_owner,
            model_name=config.replicate_model_name,
            poll_interval=config.replicate_poll_interval,
            max_poll_attempts=config.replicate_max_poll_attempts,
            timeout=config.request_timeout
        )
    if config.provider == "huggingface":
        return HuggingFaceImageProvider(
            config.huggingface_api_key,
            base_url=config.huggingface_base_url,
            model_id=config.huggingface_model,
            steps=config.huggingface_steps,
            guidance=config.huggingface_guidance,
            timeout=config.request_timeout
        )
    raise ValidationError(f"Unsupported provider: {config.provider}")


__all__ = [
    'ImageProvider',
    'GenerationRequest',
    'NormalizedResult',
    'parse_count',
    'OpenAIImageProvider',
    'ReplicateImageProvider',
    'HuggingFaceImageProvider',
    'ProviderJob',
    'ModelVersionRef',
    'create_provider',
]
