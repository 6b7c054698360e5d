"""
Base class for Karakeep resource handlers.

A handler validates its keyword parameters, builds one request descriptor and
sends it through the shared request facade.
"""

import inspect
import logging
from typing import Any, Dict, Optional, Tuple

from karakeep_adapter.core.api_request import KarakeepApiRequest
from karakeep_adapter.core.data_models import ApiRequestOptions, KarakeepResponse
from karakeep_adapter.utils.error_handler import ValidationError


class BaseResource:
    """
    Common plumbing for resource handlers.

    Subclasses set ``resource_name`` and map operation names (as used by the
    dispatcher and CLI) to method names in ``operations``.
    """

    resource_name = ""
    operations: Dict[str, str] = {}

    def __init__(self, api: KarakeepApiRequest):
        self.api = api
        self.logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def supported_operations(cls) -> Tuple[str, ...]:
        return tuple(cls.operations)

    async def execute(self, operation: str, **params: Any) -> Any:
        """
        Run an operation by name.

        Args:
            operation: Operation name, e.g. ``getAll`` or ``create``
            **params: Keyword parameters for the operation

        Returns:
            The operation result

        Raises:
            ValidationError: If the operation is not supported or the
                parameters do not match its signature
        """
        method_name = self.operations.get(operation)
        if method_name is None:
            raise ValidationError(
                f'The operation "{operation}" is not supported for {self.resource_name}'
            )

        method = getattr(self, method_name)
        try:
            inspect.signature(method).bind(**params)
        except TypeError as e:
            raise ValidationError(
                f"Invalid parameters for {self.resource_name}.{operation}: {e}"
            )
        return await method(**params)

    async def _send(
        self,
        method: str,
        endpoint: str,
        body: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        raw_response: bool = False,
    ) -> KarakeepResponse:
        return await self.api.request(
            ApiRequestOptions(
                method=method,
                endpoint=endpoint,
                body=body,
                params=params or None,
                headers=headers or None,
                raw_response=raw_response,
            )
        )

    async def _request_data(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Send a request and unwrap the normalized payload."""
        response = await self._send(method, endpoint, **kwargs)
        return response.data if response.data is not None else response.to_dict()

    @staticmethod
    def _pagination(page: Optional[int], limit: Optional[int]) -> Dict[str, Any]:
        params: Dict[str, Any] = {}
        if page:
            params["page"] = page
        if limit:
            params["limit"] = limit
        return params

    @staticmethod
    def _require_update(update_data: Dict[str, Any]) -> None:
        if not update_data:
            raise ValidationError("At least one field must be provided for update")
