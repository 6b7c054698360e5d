"""
Host execution context for the Karakeep Adapter.

The request facade never talks to a concrete host runtime. It depends on a
narrow capability interface that can hand out the current credentials and
perform one raw HTTP call. ``HttpxContext`` is the default implementation,
backed by an ``httpx.AsyncClient``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from karakeep_adapter.core.data_models import FileUpload, KarakeepCredentials


class KarakeepContext(ABC):
    """Capabilities the request layer needs from its host."""

    @abstractmethod
    async def get_credentials(self) -> Optional[KarakeepCredentials]:
        """
        Return the credentials for the current call.

        Returns:
            Credentials, or None when none are configured
        """
        pass

    @abstractmethod
    async def perform_request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Any = None,
        timeout: float = 30.0,
        raw: bool = False,
    ) -> Any:
        """
        Perform exactly one HTTP call and return the decoded payload.
        With ``raw`` the body bytes are returned undecoded.

        Implementations raise ``httpx.HTTPStatusError`` for non-2xx responses,
        ``httpx.ConnectError`` when the host cannot be reached and
        ``httpx.TimeoutException`` when the deadline is exceeded.
        """
        pass


class HttpxContext(KarakeepContext):
    """
    Default context: fixed credentials and a pooled ``httpx.AsyncClient``.

    The client is created lazily, or eagerly when the context is used as an
    async context manager:

        async with HttpxContext(credentials) as context:
            api = KarakeepApiRequest(context)
            me = await api.request(ApiRequestOptions("GET", "users/me"))
    """

    def __init__(
        self,
        credentials: Optional[KarakeepCredentials] = None,
        client: Optional[httpx.AsyncClient] = None,
        verify: bool = True,
    ):
        """
        Initialize the context.

        Args:
            credentials: Credentials handed out to every call
            client: Optional pre-built client (tests pass one with a MockTransport)
            verify: Verify TLS certificates
        """
        self.credentials = credentials
        self.verify = verify
        self._client = client
        self._owns_client = client is None
        self.logger = logging.getLogger(self.__class__.__name__)

    async def __aenter__(self) -> "HttpxContext":
        """Async context manager entry."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                verify=self.verify,
                follow_redirects=True,
                limits=httpx.Limits(
                    max_keepalive_connections=10,
                    max_connections=20,
                    keepalive_expiry=30.0,
                ),
            )
            self._owns_client = True
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client if this context created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def get_credentials(self) -> Optional[KarakeepCredentials]:
        return self.credentials

    async def perform_request(
        self,
        method: str,
        url: str,
        headers: Dict[str, str],
        body: Any = None,
        timeout: float = 30.0,
        raw: bool = False,
    ) -> Any:
        client = self._ensure_client()

        request_kwargs: Dict[str, Any] = {
            "headers": headers,
            "timeout": httpx.Timeout(timeout),
        }
        if body is not None:
            if isinstance(body, FileUpload):
                # httpx sets the multipart boundary itself
                request_kwargs["headers"] = {
                    key: value
                    for key, value in headers.items()
                    if key.lower() != "content-type"
                }
                request_kwargs["files"] = {
                    "file": (body.filename, body.content, body.mime_type)
                }
            elif isinstance(body, (bytes, bytearray, str)):
                request_kwargs["content"] = body
            else:
                request_kwargs["json"] = body

        response = await client.request(method, url, **request_kwargs)
        self.logger.debug(f"{method} {url} -> {response.status_code}")
        response.raise_for_status()

        if raw:
            return response.content
        return self._decode(response)

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        """Decode JSON responses, keep text as text and binary as bytes."""
        if not response.content:
            return None

        content_type = response.headers.get("content-type", "").lower()
        if "json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        if content_type.startswith("text/") or not content_type:
            return response.text
        return response.content
