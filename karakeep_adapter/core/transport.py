"""
HTTP Transport for the Karakeep API

Issues exactly one HTTP call per request descriptor and translates the
outcome into either a normalized response or a normalized error. Retry and
pacing live above this layer.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import urlencode

import httpx

from karakeep_adapter import __version__
from karakeep_adapter.core.context import KarakeepContext
from karakeep_adapter.core.data_models import (
    ApiRequestOptions,
    KarakeepCredentials,
    KarakeepResponse,
)
from karakeep_adapter.utils.credential_validator import mask_in_error_message
from karakeep_adapter.utils.error_handler import (
    APIError,
    ConnectivityError,
    RequestTimeoutError,
)

API_PREFIX = "api/v1"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"karakeep-adapter/{__version__}"

DEFAULT_ERROR_MESSAGE = "Unknown API error"
DEFAULT_ERROR_CODE = "UNKNOWN_ERROR"


def _format_param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query_string(params: Optional[Mapping[str, Any]]) -> str:
    """
    Encode query parameters, dropping ``None`` values.

    List and tuple values expand to repeated keys.

    Args:
        params: Mapping of parameter names to scalar or list values

    Returns:
        Encoded query string without the leading ``?``
    """
    if not params:
        return ""

    pairs: List[Tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend(
                (key, _format_param_value(item)) for item in value if item is not None
            )
        else:
            pairs.append((key, _format_param_value(value)))

    return urlencode(pairs)


def build_api_url(
    instance_url: str, endpoint: str, params: Optional[Mapping[str, Any]] = None
) -> str:
    """
    Build the absolute API URL for an endpoint.

    Args:
        instance_url: Base URL of the Karakeep instance
        endpoint: Endpoint path relative to the API prefix
        params: Optional query parameters

    Returns:
        Absolute URL including the query string
    """
    base_url = instance_url.rstrip("/")
    url = f"{base_url}/{API_PREFIX}/{endpoint.lstrip('/')}"

    query = build_query_string(params)
    if query:
        url = f"{url}?{query}"
    return url


def build_headers(
    credentials: KarakeepCredentials, overrides: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Default headers merged with caller overrides (overrides win)."""
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {credentials.api_key}",
        "User-Agent": USER_AGENT,
    }
    if overrides:
        headers.update(overrides)
    return headers


def parse_error_body(body: Any) -> Tuple[str, str, Dict[str, Any]]:
    """
    Extract message, code and details from an error response body.

    Args:
        body: Raw response body (JSON string, plain text or decoded mapping)

    Returns:
        Tuple of (message, code, details)
    """
    message = DEFAULT_ERROR_MESSAGE
    code = DEFAULT_ERROR_CODE
    details: Dict[str, Any] = {}

    if body is None or body == "":
        return message, code, details

    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")

    if isinstance(body, str):
        try:
            parsed = json.loads(body)
        except ValueError:
            return body, code, {"rawResponse": body}
        if not isinstance(parsed, Mapping):
            return body, code, {"rawResponse": body}
        body = parsed

    if isinstance(body, Mapping):
        message = body.get("message") or body.get("error") or message
        if not isinstance(message, str):
            message = json.dumps(message)
        code = str(body.get("code") or code)
        raw_details = body.get("details")
        if raw_details is None:
            details = dict(body)
        elif isinstance(raw_details, Mapping):
            details = dict(raw_details)
        else:
            details = {"details": raw_details}

    return message, code, details


def _read_error_body(response: httpx.Response) -> Any:
    try:
        return response.text
    except httpx.ResponseNotRead:
        return None


class KarakeepTransport:
    """
    Single-shot HTTP transport.

    Builds the URL and headers, delegates the raw call to the context and
    maps the outcome into the normalized response/error shapes.
    """

    def __init__(self, context: KarakeepContext, timeout: float = DEFAULT_TIMEOUT):
        """
        Initialize the transport.

        Args:
            context: Host capability used to perform the raw call
            timeout: Per-call client-side deadline in seconds
        """
        self.context = context
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    async def execute(
        self, options: ApiRequestOptions, credentials: KarakeepCredentials
    ) -> KarakeepResponse:
        """
        Issue one HTTP call.

        Args:
            options: Request descriptor
            credentials: Credentials snapshot for this call

        Returns:
            Normalized response

        Raises:
            APIError: On non-2xx responses
            ConnectivityError: When the instance cannot be reached
            RequestTimeoutError: When the call exceeds the timeout
        """
        url = build_api_url(credentials.instance_url, options.endpoint, options.params)
        headers = build_headers(credentials, options.headers)
        body = options.body if options.method != "GET" else None

        self.logger.debug(f"Karakeep request: {options.method} {url}")

        try:
            payload = await self.context.perform_request(
                options.method,
                url,
                headers,
                body,
                self.timeout,
                raw=options.raw_response,
            )
        except httpx.HTTPStatusError as e:
            raise self._api_error(e.response) from e
        except httpx.ConnectError as e:
            raise ConnectivityError(
                f"Cannot connect to Karakeep instance at {credentials.instance_url}. "
                "Please check the instance URL.",
                details={
                    "instanceUrl": credentials.instance_url,
                    "reason": mask_in_error_message(str(e), [credentials.api_key]),
                },
            ) from e
        except httpx.TimeoutException as e:
            raise RequestTimeoutError(
                "Request to Karakeep API timed out. Please try again.",
                details={"timeout": self.timeout, "url": url},
            ) from e

        if options.raw_response:
            return KarakeepResponse(data=payload)
        return KarakeepResponse.from_payload(payload)

    def _api_error(self, response: httpx.Response) -> APIError:
        status_code = response.status_code
        message, code, details = parse_error_body(_read_error_body(response))

        self.logger.debug(f"Karakeep API error {status_code}: {code} {message}")

        return APIError(
            message,
            code=code,
            status_code=status_code,
            details=details,
        )
