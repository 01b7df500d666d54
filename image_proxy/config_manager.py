"""
Image Proxy Configuration Manager

Builds the process-wide, read-only configuration once at startup from:
- Built-in defaults
- An optional YAML file (proxy_config.yaml)
- A .env file and the process environment (highest precedence)
"""

import os
import yaml
from dataclasses import dataclass, fields
from typing import Dict, List, Optional, Any, Mapping

from dotenv import load_dotenv

from .errors import ConfigurationError, ValidationError


SUPPORTED_PROVIDERS = ("openai", "replicate", "huggingface")

# Provider name -> config field holding its credential
PROVIDER_KEY_FIELDS = {
    "openai": "openai_api_key",
    "replicate": "replicate_api_token",
    "huggingface": "huggingface_api_key",
}


@dataclass(frozen=True)
class ProxyConfig:
    """Process configuration, fixed for the process lifetime"""
    provider: str = "openai"
    openai_api_key: Optional[str] = None
    replicate_api_token: Optional[str] = None
    huggingface_api_key: Optional[str] = None

    frontend_origin: str = "*"
    rate_limit_per_minute: int = 30
    port: int = 4000
    log_level: str = "INFO"
    request_timeout: float = 120.0

    openai_base_url: str = "https://api.openai.com"

    replicate_base_url: str = "https://api.replicate.com"
    replicate_model_owner: str = "stability-ai"
    replicate_model_name: str = "sdxl"
    replicate_poll_interval: float = 1.5
    replicate_max_poll_attempts: int = 80

    huggingface_base_url: str = "https://api-inference.huggingface.co"
    huggingface_model: str = "stabilityai/stable-diffusion-xl-base-1.0"
    huggingface_steps: Optional[int] = None
    huggingface_guidance: Optional[float] = None

    @property
    def api_key(self) -> Optional[str]:
        """Credential of the active provider"""
        field_name = PROVIDER_KEY_FIELDS.get(self.provider)
        return getattr(self, field_name) if field_name else None

    @property
    def secrets(self) -> List[str]:
        """All configured credential values"""
        values = [getattr(self, name) for name in PROVIDER_KEY_FIELDS.values()]
        return [v for v in values if v]


def _coerce(name: str, raw: Any, default: Any) -> Any:
    """Convert a raw YAML/env value to the type of the field default"""
    if raw is None or raw == "":
        return default
    try:
        if name in ("huggingface_steps", "rate_limit_per_minute", "port",
                    "replicate_max_poll_attempts"):
            return int(raw)
        if name in ("huggingface_guidance", "replicate_poll_interval", "request_timeout"):
            return float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Invalid value for {name.upper()}: expected a number",
            field=name
        )
    return str(raw).strip()


class ConfigManager:
    """
    Configuration loader.

    Precedence (lowest to highest): defaults, YAML file, environment.
    """

    DEFAULT_CONFIG_FILE = "proxy_config.yaml"

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        """
        Args:
            config_path: YAML file path; defaults to $IMAGE_PROXY_CONFIG or
                ./proxy_config.yaml
            environ: Environment mapping; defaults to os.environ after
                loading .env
        """
        if environ is None:
            load_dotenv()
            environ = os.environ
        self.environ = environ
        self.config_path = (
            config_path
            or environ.get("IMAGE_PROXY_CONFIG")
            or os.path.join(os.getcwd(), self.DEFAULT_CONFIG_FILE)
        )
        self._config: Optional[ProxyConfig] = None

    def _load_yaml(self) -> Dict:
        if not os.path.exists(self.config_path):
            return {}
        with open(self.config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {self.config_path} must contain a mapping"
            )
        return {str(k).lower(): v for k, v in data.items()}

    def load_config(self) -> ProxyConfig:
        """Build the configuration; later calls return the same object"""
        if self._config is not None:
            return self._config

        file_values = self._load_yaml()
        values = {}
        for f in fields(ProxyConfig):
            raw = self.environ.get(f.name.upper())
            if raw is None or raw == "":
                raw = file_values.get(f.name)
            values[f.name] = _coerce(f.name, raw, f.default)

        values["provider"] = str(values["provider"]).lower()
        self._config = ProxyConfig(**values)
        return self._config

    def validate_config(self, raise_on_error: bool = False) -> List[str]:
        """
        Validate the loaded configuration.

        Args:
            raise_on_error: If True, raise ValidationError when problems exist

        Returns:
            List of validation error messages (empty if valid)
        """
        config = self.load_config()
        errors = []

        if config.provider not in SUPPORTED_PROVIDERS:
            errors.append(f"Unsupported provider: {config.provider}")
        elif not config.api_key:
            errors.append(
                f"{PROVIDER_KEY_FIELDS[config.provider].upper()} is not set"
            )

        if config.rate_limit_per_minute < 1:
            errors.append("RATE_LIMIT_PER_MINUTE must be at least 1")
        if config.replicate_max_poll_attempts < 1:
            errors.append("REPLICATE_MAX_POLL_ATTEMPTS must be at least 1")
        if config.replicate_poll_interval < 0:
            errors.append("REPLICATE_POLL_INTERVAL must not be negative")
        if not 0 < config.port < 65536:
            errors.append(f"PORT out of range: {config.port}")

        if errors and raise_on_error:
            raise ValidationError("Invalid configuration", {"errors": errors})
        return errors
