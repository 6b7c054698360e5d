"""
Data models for the Karakeep Adapter.

This module defines the value objects that flow through the request
orchestration layer: request descriptors, credentials, retry and rate-limit
configuration, queue entries and normalized responses.
"""

import asyncio
import json
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Mapping, Optional, Union

HTTP_METHODS = ("GET", "POST", "PATCH", "PUT", "DELETE")

DEFAULT_RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def _merge_overrides(config, overrides):
    """Return ``config`` with the non-None entries of ``overrides`` applied."""
    if overrides is None:
        return config
    if isinstance(overrides, type(config)):
        return overrides

    known = {f.name for f in fields(config)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(
            f"Unknown {type(config).__name__} option(s): {', '.join(sorted(unknown))}"
        )

    changes = {key: value for key, value in overrides.items() if value is not None}
    return replace(config, **changes)


@dataclass(frozen=True)
class ApiRequestOptions:
    """
    Descriptor of one outbound call. Never mutated after construction.

    ``raw_response`` requests the undecoded response body as bytes.
    """

    method: str
    endpoint: str
    body: Any = None
    headers: Optional[Mapping[str, str]] = None
    params: Optional[Mapping[str, Any]] = None
    raw_response: bool = False

    def __post_init__(self):
        method = str(self.method).upper()
        if method not in HTTP_METHODS:
            raise ValueError(
                f"Unsupported HTTP method: {self.method}. "
                f"Expected one of {', '.join(HTTP_METHODS)}"
            )
        object.__setattr__(self, "method", method)
        if self.headers is not None:
            object.__setattr__(self, "headers", dict(self.headers))
        if self.params is not None:
            object.__setattr__(self, "params", dict(self.params))


@dataclass(frozen=True)
class KarakeepCredentials:
    """Instance URL and bearer token for one Karakeep account."""

    instance_url: str
    api_key: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "KarakeepCredentials":
        """Build credentials from camelCase or snake_case keys."""
        return cls(
            instance_url=data.get("instanceUrl", data.get("instance_url", "")) or "",
            api_key=data.get("apiKey", data.get("api_key", "")) or "",
        )

    def __repr__(self) -> str:
        # Never render the key itself
        return f"KarakeepCredentials(instance_url={self.instance_url!r}, api_key='***')"


@dataclass(frozen=True)
class RetryConfig:
    """Retry/backoff settings. Delays are in seconds."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    retryable_status_codes: FrozenSet[int] = DEFAULT_RETRYABLE_STATUS_CODES

    def __post_init__(self):
        if isinstance(self.max_retries, bool) or not isinstance(self.max_retries, int):
            raise ValueError(
                f"max_retries must be a non-negative integer, got {self.max_retries!r}"
            )
        if self.max_retries < 0:
            raise ValueError("max_retries must be a non-negative integer")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("Retry delays must be non-negative")
        object.__setattr__(
            self,
            "retryable_status_codes",
            frozenset(int(code) for code in self.retryable_status_codes),
        )

    def with_overrides(
        self, overrides: Union["RetryConfig", Mapping[str, Any], None]
    ) -> "RetryConfig":
        return _merge_overrides(self, overrides)


@dataclass(frozen=True)
class RateLimitConfig:
    """Queue pacing settings. ``queue_timeout`` is in seconds."""

    max_requests_per_second: float = 10.0
    queue_timeout: float = 30.0

    def __post_init__(self):
        if self.max_requests_per_second <= 0:
            raise ValueError("max_requests_per_second must be positive")
        if self.queue_timeout < 0:
            raise ValueError("queue_timeout must be non-negative")

    @property
    def min_interval(self) -> float:
        """Minimum spacing between issued requests, in seconds."""
        return 1.0 / self.max_requests_per_second

    def with_overrides(
        self, overrides: Union["RateLimitConfig", Mapping[str, Any], None]
    ) -> "RateLimitConfig":
        return _merge_overrides(self, overrides)


@dataclass
class QueuedRequest:
    """
    A request waiting in the queue.

    The future is the caller's pending result; the drain loop settles it
    exactly once.
    """

    options: ApiRequestOptions
    credentials: KarakeepCredentials
    retry_config: RetryConfig
    rate_limit_config: RateLimitConfig
    timestamp: float
    future: asyncio.Future

    def resolve(self, result: Any) -> bool:
        """Settle with a result. Returns False if already settled."""
        if self.future.done():
            return False
        self.future.set_result(result)
        return True

    def reject(self, error: BaseException) -> bool:
        """Settle with an error. Returns False if already settled."""
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True


@dataclass
class KarakeepResponse:
    """Normalized successful response: a payload plus optional metadata."""

    data: Any = None
    meta: Optional[Dict[str, Any]] = None
    # top-level keys besides data and meta, e.g. pagination cursors
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "KarakeepResponse":
        """
        Coerce a raw transport payload into the normalized shape.

        Strings are decoded as JSON when possible and wrapped verbatim
        otherwise. Mappings that already contain a ``data`` key are taken as
        pre-normalized and kept whole; anything else (binary content included) becomes the
        ``data`` value.
        """
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except ValueError:
                return cls(data=payload)

        if isinstance(payload, Mapping) and "data" in payload:
            extra = {
                key: value
                for key, value in payload.items()
                if key not in ("data", "meta")
            }
            return cls(data=payload["data"], meta=payload.get("meta"), extra=extra)

        return cls(data=payload)

    def to_dict(self) -> Dict[str, Any]:
        result = dict(self.extra)
        result["data"] = self.data
        if self.meta is not None:
            result["meta"] = self.meta
        return result


@dataclass
class QueueStatus:
    """Snapshot of a request queue for monitoring."""

    queue_length: int = 0
    is_processing: bool = False
    total_processed: int = 0
    total_expired: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "queueLength": self.queue_length,
            "isProcessing": self.is_processing,
            "totalProcessed": self.total_processed,
            "totalExpired": self.total_expired,
        }


@dataclass(frozen=True)
class FileUpload:
    """Binary file sent as a multipart ``file`` field instead of a JSON body."""

    content: bytes
    filename: str
    mime_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)
