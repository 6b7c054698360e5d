"""
Pydantic-based configuration for the Karakeep Adapter.

Settings come from a TOML or JSON file, with credentials optionally supplied
through the ``KARAKEEP_INSTANCE_URL`` and ``KARAKEEP_API_KEY`` environment
variables, and may be overridden from the command line.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import toml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from karakeep_adapter.core.data_models import (
    DEFAULT_RETRYABLE_STATUS_CODES,
    KarakeepCredentials,
    RateLimitConfig,
    RetryConfig,
)
from karakeep_adapter.utils.error_handler import ConfigurationError

ENV_INSTANCE_URL = "KARAKEEP_INSTANCE_URL"
ENV_API_KEY = "KARAKEEP_API_KEY"

PLACEHOLDER_API_KEYS = ("your-karakeep-api-key-here", "ak-placeholder")


class CredentialsConfig(BaseModel):
    """Karakeep instance and API key."""

    instance_url: str = Field(
        default="",
        description="Base URL of the Karakeep instance",
        json_schema_extra={
            "error_msg": "Instance URL must be an HTTP or HTTPS URL, "
            "e.g. https://karakeep.example.com"
        },
    )
    api_key: Optional[SecretStr] = Field(
        default=None,
        description="Karakeep API key",
        json_schema_extra={
            "error_msg": "API key is created in the Karakeep settings page. "
            "Keep this secure and never commit to version control."
        },
    )

    @field_validator("instance_url", mode="before")
    @classmethod
    def strip_instance_url(cls, v):
        return (v or "").strip()

    @field_validator("api_key", mode="before")
    @classmethod
    def validate_api_key_format(cls, v):
        """Reject placeholder keys left over from the sample config."""
        if v is None or v == "":
            return None

        key_str = v.get_secret_value() if isinstance(v, SecretStr) else str(v)
        if key_str in PLACEHOLDER_API_KEYS:
            raise ValueError(
                "Please replace the placeholder API key with your actual "
                "Karakeep API key."
            )
        return SecretStr(key_str.strip())


class RetrySettings(BaseModel):
    """Retry and exponential backoff settings."""

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retry attempts after the first try",
    )
    base_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description="Backoff base delay in seconds",
    )
    max_delay: float = Field(
        default=30.0,
        ge=0.0,
        le=600.0,
        description="Backoff cap in seconds",
    )
    retryable_status_codes: List[int] = Field(
        default_factory=lambda: sorted(DEFAULT_RETRYABLE_STATUS_CODES),
        description="HTTP status codes that are retried",
    )

    @field_validator("retryable_status_codes")
    @classmethod
    def validate_status_codes(cls, v):
        for code in v:
            if not 100 <= code <= 599:
                raise ValueError(f"Invalid HTTP status code: {code}")
        return v


class RateLimitSettings(BaseModel):
    """Request queue pacing."""

    max_requests_per_second: float = Field(
        default=10.0,
        gt=0.0,
        le=1000.0,
        description="Maximum request starts per second",
    )
    queue_timeout: float = Field(
        default=30.0,
        ge=0.0,
        le=3600.0,
        description="Seconds a request may wait in the queue",
    )


class NetworkSettings(BaseModel):
    """Transport settings."""

    timeout: float = Field(
        default=30.0,
        ge=1.0,
        le=300.0,
        description="Per-request timeout in seconds",
    )
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")


class AdapterConfig(BaseModel):
    """Main adapter configuration."""

    credentials: CredentialsConfig = Field(default_factory=CredentialsConfig)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    network: NetworkSettings = Field(default_factory=NetworkSettings)
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        level = str(v).upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level


class ConfigurationManager:
    """Loads and validates adapter configuration from files and environment."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize configuration manager.

        Args:
            config_path: Optional path to configuration file (TOML or JSON)
        """
        self._config: Optional[AdapterConfig] = None
        self._load_configuration(Path(config_path) if config_path else None)

    def _get_default_config_paths(self) -> List[Path]:
        cwd = Path.cwd()
        home_config = Path.home() / ".config" / "karakeep-adapter"
        return [
            cwd / "karakeep_config.toml",
            cwd / "karakeep_config.json",
            home_config / "config.toml",
            home_config / "config.json",
        ]

    def _load_configuration(self, config_path: Optional[Path] = None) -> None:
        config_data: Dict[str, Any] = {}

        if config_path:
            config_data = self._load_config_file(config_path)
        else:
            for path in self._get_default_config_paths():
                if path.exists():
                    config_data = self._load_config_file(path)
                    break

        self._load_credentials_from_env(config_data)

        try:
            self._config = AdapterConfig(**config_data)
        except ValidationError as e:
            raise ConfigurationError(format_config_error(e))

    def _load_config_file(self, config_path: Path) -> Dict[str, Any]:
        """Load configuration from TOML or JSON file."""
        if not config_path.exists():
            raise ConfigurationError(
                format_config_error(
                    FileNotFoundError(2, "No such file", str(config_path))
                )
            )

        suffix = config_path.suffix.lower()
        if suffix not in (".toml", ".json"):
            raise ConfigurationError(
                f"Unsupported configuration file format: {config_path.suffix}"
            )

        try:
            if suffix == ".toml":
                return toml.load(config_path)
            with open(config_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError, toml.TomlDecodeError) as e:
            raise ConfigurationError(
                f"Failed to load configuration from {config_path}: {e}"
            )

    def _load_credentials_from_env(self, config_data: Dict[str, Any]) -> None:
        """Fill missing credentials from environment variables."""
        credentials = config_data.setdefault("credentials", {})

        instance_url = os.getenv(ENV_INSTANCE_URL)
        api_key = os.getenv(ENV_API_KEY)

        if instance_url and not credentials.get("instance_url"):
            credentials["instance_url"] = instance_url
        if api_key and not credentials.get("api_key"):
            credentials["api_key"] = api_key

    def update_from_cli_args(self, args: Dict[str, Any]) -> None:
        """Apply non-None command-line overrides and revalidate."""
        config_dict = self.config.model_dump()
        api_key = self.config.credentials.api_key
        config_dict["credentials"]["api_key"] = (
            api_key.get_secret_value() if api_key else None
        )

        if args.get("instance_url"):
            config_dict["credentials"]["instance_url"] = args["instance_url"]
        if args.get("api_key"):
            config_dict["credentials"]["api_key"] = args["api_key"]
        if args.get("max_retries") is not None:
            config_dict["retry"]["max_retries"] = args["max_retries"]
        if args.get("requests_per_second") is not None:
            config_dict["rate_limit"]["max_requests_per_second"] = args[
                "requests_per_second"
            ]
        if args.get("timeout") is not None:
            config_dict["network"]["timeout"] = args["timeout"]
        if args.get("log_level"):
            config_dict["log_level"] = args["log_level"]

        try:
            self._config = AdapterConfig(**config_dict)
        except ValidationError as e:
            raise ConfigurationError(format_config_error(e))

    @property
    def config(self) -> AdapterConfig:
        """Get the current configuration."""
        if not self._config:
            raise RuntimeError("Configuration not loaded")
        return self._config

    def get_credentials(self) -> Optional[KarakeepCredentials]:
        """Return the configured credentials, or None if the API key is missing."""
        credentials = self.config.credentials
        if credentials.api_key is None:
            return None
        return KarakeepCredentials(
            instance_url=credentials.instance_url,
            api_key=credentials.api_key.get_secret_value(),
        )

    def retry_config(self) -> RetryConfig:
        retry = self.config.retry
        return RetryConfig(
            max_retries=retry.max_retries,
            base_delay=retry.base_delay,
            max_delay=retry.max_delay,
            retryable_status_codes=frozenset(retry.retryable_status_codes),
        )

    def rate_limit_config(self) -> RateLimitConfig:
        rate_limit = self.config.rate_limit
        return RateLimitConfig(
            max_requests_per_second=rate_limit.max_requests_per_second,
            queue_timeout=rate_limit.queue_timeout,
        )

    @staticmethod
    def create_sample_config(
        output_path: Union[str, Path], format: str = "toml"
    ) -> None:
        """Create a sample configuration file."""
        sample_config = {
            "credentials": {
                "instance_url": "https://karakeep.example.com",
                # Note: replace with a real key and keep it out of version control
                "api_key": "your-karakeep-api-key-here",
            },
            "retry": {
                "max_retries": 3,
                "base_delay": 1.0,
                "max_delay": 30.0,
                "retryable_status_codes": sorted(DEFAULT_RETRYABLE_STATUS_CODES),
            },
            "rate_limit": {"max_requests_per_second": 10.0, "queue_timeout": 30.0},
            "network": {"timeout": 30.0, "verify_ssl": True},
            "log_level": "INFO",
        }

        if format.lower() == "toml":
            with open(output_path, "w", encoding="utf-8") as f:
                toml.dump(sample_config, f)
        elif format.lower() == "json":
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(sample_config, f, indent=2)
        else:
            raise ValueError(f"Unsupported format: {format}")


def _format_error_location(location: tuple) -> str:
    if not location:
        return "Configuration"
    return " -> ".join(
        part if isinstance(part, str) else f"[{part}]" for part in location
    )


def _format_validation_error(error: ValidationError) -> str:
    """Convert a pydantic ValidationError into one line per problem."""
    error_messages = []

    for error_detail in error.errors():
        location = _format_error_location(error_detail["loc"])
        error_type = error_detail["type"]
        input_value = error_detail.get("input", "N/A")
        ctx = error_detail.get("ctx") or {}

        if error_type == "missing":
            message = "Required field is missing"
        elif error_type in (
            "greater_than_equal",
            "less_than_equal",
            "greater_than",
            "less_than",
        ):
            operator = {
                "greater_than_equal": ">=",
                "less_than_equal": "<=",
                "greater_than": ">",
                "less_than": "<",
            }[error_type]
            limit = next(iter(ctx.values()), "limit")
            message = f"Value must be {operator} {limit} (got: {input_value})"
        elif "api_key" in location:
            # never echo the key back
            message = error_detail.get("msg", "Invalid API key")
        else:
            message = (
                f"{error_detail.get('msg', 'Invalid configuration value')} "
                f"(got: {input_value})"
            )

        error_messages.append(f"  - {location}: {message}")

    return (
        "Configuration Validation Failed:\n"
        + "\n".join(error_messages)
        + "\n\nTip: use 'karakeep-adapter --create-config PATH' to generate a sample file"
    )


def format_config_error(error: Exception) -> str:
    """
    Format any configuration-related error into a user-friendly message.

    Args:
        error: Exception that occurred during configuration

    Returns:
        Formatted error message
    """
    if isinstance(error, ValidationError):
        return _format_validation_error(error)

    if isinstance(error, FileNotFoundError):
        return (
            f"Configuration File Not Found: {error.filename}\n"
            f"Create one with: karakeep-adapter --create-config PATH"
        )

    return f"Configuration Error: {error}"
