"""
Core request orchestration.

This package contains the request facade, the rate-limited request queue,
the retry executor and the HTTP transport.
"""

from .api_request import KarakeepApiRequest
from .request_queue import RequestQueue
from .retry_executor import RetryExecutor
from .transport import KarakeepTransport

__all__ = [
    "KarakeepApiRequest",
    "RequestQueue",
    "RetryExecutor",
    "KarakeepTransport",
]
