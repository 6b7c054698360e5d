"""
Credential Validation Module

Validates Karakeep instance URLs and API keys before any network use, without
exposing the keys in logs or errors.
"""

import logging
from typing import List, Tuple
from urllib.parse import urlparse

from karakeep_adapter.utils.error_handler import ConfigurationError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = ("http", "https")
MIN_API_KEY_LENGTH = 10


def is_valid_url(url: str) -> bool:
    """
    Check that a URL is an absolute http(s) URL.

    Args:
        url: The URL string to validate

    Returns:
        True if valid, False otherwise
    """
    if not isinstance(url, str) or not url.strip():
        return False

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False

    return parsed.scheme in ALLOWED_SCHEMES and bool(parsed.netloc)


def is_valid_api_key(api_key: str) -> bool:
    """Basic shape check: a non-blank string of at least 10 characters."""
    return isinstance(api_key, str) and len(api_key.strip()) >= MIN_API_KEY_LENGTH


def validate_credentials(credentials) -> None:
    """
    Validate credentials before a request is queued.

    Args:
        credentials: Object exposing ``instance_url`` and ``api_key``

    Raises:
        ConfigurationError: If the API key or instance URL is unusable
    """
    api_key = getattr(credentials, "api_key", None)
    instance_url = getattr(credentials, "instance_url", None)

    if not api_key or not str(api_key).strip():
        raise ConfigurationError("API key is required for Karakeep authentication")

    if not instance_url or not str(instance_url).strip():
        raise ConfigurationError(
            "Instance URL is required for Karakeep authentication"
        )

    if not is_valid_url(instance_url):
        logger.debug(f"Rejected instance URL: {instance_url!r}")
        raise ConfigurationError(
            "Instance URL must be a valid HTTP or HTTPS URL",
            details={"instanceUrl": instance_url},
        )


def validate_karakeep_credentials(credentials) -> Tuple[bool, List[str]]:
    """
    Collect every credential problem instead of failing on the first one.

    Used by the CLI and configuration layer to report all issues at once.

    Args:
        credentials: Object exposing ``instance_url`` and ``api_key``

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []
    instance_url = getattr(credentials, "instance_url", None)
    api_key = getattr(credentials, "api_key", None)

    if not instance_url:
        errors.append("Instance URL is required")
    elif not is_valid_url(instance_url):
        errors.append("Instance URL must be a valid HTTP or HTTPS URL")

    if not api_key:
        errors.append("API Key is required")
    elif not is_valid_api_key(api_key):
        errors.append(
            f"API Key must be at least {MIN_API_KEY_LENGTH} characters long"
        )

    return len(errors) == 0, errors


def sanitize_for_logging(api_key: str) -> str:
    """
    Sanitize API key for safe logging.

    Args:
        api_key: API key to sanitize

    Returns:
        Sanitized version showing only first/last few characters
    """
    if not api_key or len(api_key) < MIN_API_KEY_LENGTH:
        return "***"

    return f"{api_key[:4]}...{api_key[-3:]}"


def mask_in_error_message(message: str, api_keys: list) -> str:
    """
    Mask any API keys that might appear in error messages.

    Args:
        message: Error message that might contain API keys
        api_keys: List of API keys to mask

    Returns:
        Message with API keys masked
    """
    masked_message = message
    for key in api_keys:
        if key and key in masked_message:
            masked_message = masked_message.replace(key, sanitize_for_logging(key))
    return masked_message
