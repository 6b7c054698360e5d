"""
Karakeep Adapter

An asynchronous client for the Karakeep bookmark manager API. Requests pass
through a FIFO, rate-limited queue and a retry executor with exponential
backoff before reaching the instance, and every failure is reported as a
normalized error.
"""

__version__ = "1.0.0"

from .core.api_request import KarakeepApiRequest
from .core.context import HttpxContext, KarakeepContext
from .core.data_models import (
    ApiRequestOptions,
    KarakeepCredentials,
    KarakeepResponse,
    RateLimitConfig,
    RetryConfig,
)
from .core.dispatcher import ResourceDispatcher
from .utils.error_handler import (
    APIError,
    ConfigurationError,
    ConnectivityError,
    KarakeepAdapterError,
    NetworkError,
    QueueTimeoutError,
    RequestTimeoutError,
    ValidationError,
)

__all__ = [
    "__version__",
    "KarakeepApiRequest",
    "KarakeepContext",
    "HttpxContext",
    "ApiRequestOptions",
    "KarakeepCredentials",
    "KarakeepResponse",
    "RateLimitConfig",
    "RetryConfig",
    "ResourceDispatcher",
    "KarakeepAdapterError",
    "ConfigurationError",
    "ValidationError",
    "NetworkError",
    "ConnectivityError",
    "RequestTimeoutError",
    "QueueTimeoutError",
    "APIError",
]
