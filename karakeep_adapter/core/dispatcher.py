"""
Item Dispatcher

Runs one resource operation per input item and collects the outputs in
order. List results are flattened so that each bookmark, tag or list becomes
its own output record, paired with the index of the item that produced it.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from karakeep_adapter.core.api_request import KarakeepApiRequest
from karakeep_adapter.resources import RESOURCE_CLASSES
from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import ValidationError


class ResourceDispatcher:
    """Routes (resource, operation) pairs to resource handlers."""

    def __init__(self, api: KarakeepApiRequest):
        self.api = api
        self.logger = logging.getLogger(self.__class__.__name__)
        self._handlers: Dict[str, BaseResource] = {}

    def get_handler(self, resource: str) -> BaseResource:
        """
        Return the (cached) handler for a resource name.

        Raises:
            ValidationError: If the resource is unknown
        """
        handler = self._handlers.get(resource)
        if handler is None:
            handler_class = RESOURCE_CLASSES.get(resource)
            if handler_class is None:
                raise ValidationError(f'The resource "{resource}" is not supported')
            handler = handler_class(self.api)
            self._handlers[resource] = handler
        return handler

    async def execute(
        self,
        resource: str,
        operation: str,
        items: Optional[Iterable[Mapping[str, Any]]] = None,
        continue_on_fail: bool = False,
    ) -> List[Dict[str, Any]]:
        """
        Execute an operation once per item.

        Args:
            resource: Resource name, e.g. ``bookmarks``
            operation: Operation name, e.g. ``getAll``
            items: Keyword parameters for each call (one empty call if None)
            continue_on_fail: Record failures as ``{"error": message}``
                outputs instead of raising

        Returns:
            List of ``{"json": result, "pairedItem": index}`` records
        """
        handler = self.get_handler(resource)
        items = list(items) if items is not None else [{}]

        results: List[Dict[str, Any]] = []
        for index, params in enumerate(items):
            try:
                output = await handler.execute(operation, **dict(params))
            except Exception as e:
                if not continue_on_fail:
                    raise
                self.logger.warning(f"{resource}.{operation} failed for item {index}: {e}")
                results.append({"json": {"error": str(e)}, "pairedItem": index})
                continue

            if isinstance(output, list):
                results.extend({"json": entry, "pairedItem": index} for entry in output)
            else:
                results.append({"json": output, "pairedItem": index})

        self.logger.debug(
            f"{resource}.{operation}: {len(items)} item(s) -> {len(results)} output(s)"
        )
        return results
