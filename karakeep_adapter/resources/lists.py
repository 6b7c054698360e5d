"""
List operations for the Karakeep API.
"""

from typing import Any, Dict, List, Optional, Union

from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import KarakeepAdapterError, ValidationError
from karakeep_adapter.utils.validation import parse_id_list, require_id

LIST_TYPES = ("manual", "smart")
MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


class ListsResource(BaseResource):
    """Manual and smart bookmark lists."""

    resource_name = "lists"
    operations = {
        "get_all": "get_all",
        "getAll": "get_all",
        "get_by_id": "get_by_id",
        "getById": "get_by_id",
        "create": "create",
        "update": "update",
        "delete": "delete",
        "add_bookmarks": "add_bookmarks",
        "addBookmarks": "add_bookmarks",
        "remove_bookmarks": "remove_bookmarks",
        "removeBookmarks": "remove_bookmarks",
    }

    @staticmethod
    def _check_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("List name is required", field="name")
        if len(name) > MAX_NAME_LENGTH:
            raise ValidationError(
                f"List name must be {MAX_NAME_LENGTH} characters or less", field="name"
            )
        return name

    @staticmethod
    def _check_description(description: str) -> None:
        if len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"List description must be {MAX_DESCRIPTION_LENGTH} characters or less",
                field="description",
            )

    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        is_public: Optional[bool] = None,
    ) -> Any:
        params = self._pagination(page, limit)
        if is_public is not None:
            params["public"] = is_public
        return await self._request_data("GET", "lists", params=params)

    async def get_by_id(self, list_id: str) -> Any:
        list_id = require_id(list_id, "List ID")
        return await self._request_data("GET", f"lists/{list_id}")

    async def create(
        self,
        name: str,
        icon: Optional[str] = None,
        description: Optional[str] = None,
        list_type: str = "manual",
        query: Optional[str] = None,
        parent_id: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Any:
        """
        Create a list.

        Smart lists are populated by a saved search and need ``query``.

        Raises:
            ValidationError: On length limits or a smart list without query
        """
        body: Dict[str, Any] = {"name": self._check_name(name)}

        if list_type not in LIST_TYPES:
            raise ValidationError(f"Invalid list type: {list_type}", field="type")
        if list_type == "smart" and not (query or "").strip():
            raise ValidationError("Query is required for smart lists", field="query")

        if icon:
            body["icon"] = icon
        if description:
            self._check_description(description)
            body["description"] = description
        if list_type != "manual":
            body["type"] = list_type
        if query:
            body["query"] = query.strip()
        if parent_id:
            body["parentId"] = parent_id
        if is_public is not None:
            body["public"] = is_public

        return await self._request_data("POST", "lists", body=body)

    async def update(
        self,
        list_id: str,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        description: Optional[str] = None,
        query: Optional[str] = None,
        parent_id: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Any:
        list_id = require_id(list_id, "List ID")

        update_data: Dict[str, Any] = {}
        if name is not None:
            update_data["name"] = self._check_name(name)
        if icon is not None:
            update_data["icon"] = icon
        if description is not None:
            self._check_description(description)
            update_data["description"] = description
        if query is not None:
            update_data["query"] = query
        if parent_id is not None:
            update_data["parentId"] = parent_id
        if is_public is not None:
            update_data["public"] = is_public
        self._require_update(update_data)

        return await self._request_data("PATCH", f"lists/{list_id}", body=update_data)

    async def delete(self, list_id: str) -> Dict[str, Any]:
        list_id = require_id(list_id, "List ID")
        await self._send("DELETE", f"lists/{list_id}")
        return {"success": True, "id": list_id}

    async def add_bookmarks(
        self, list_id: str, bookmark_ids: Union[str, List[str]]
    ) -> Dict[str, Any]:
        """
        Add one or more bookmarks to a manual list.

        With several IDs each one is attempted and failures are reported per
        item instead of aborting the batch.
        """
        list_id = require_id(list_id, "List ID")
        ids = parse_id_list(bookmark_ids)
        if not ids:
            raise ValidationError("At least one bookmark ID is required", field="bookmarkIds")

        if len(ids) == 1:
            data = await self._request_data("PUT", f"lists/{list_id}/bookmarks/{ids[0]}")
            return {"success": True, "listId": list_id, "bookmarkId": ids[0], "data": data}

        results = []
        for bookmark_id in ids:
            try:
                await self._send("PUT", f"lists/{list_id}/bookmarks/{bookmark_id}")
                results.append({"bookmarkId": bookmark_id, "success": True})
            except KarakeepAdapterError as e:
                self.logger.warning(
                    f"Failed to add bookmark {bookmark_id} to list {list_id}: {e}"
                )
                results.append(
                    {"bookmarkId": bookmark_id, "success": False, "error": str(e)}
                )

        return {
            "success": all(result["success"] for result in results),
            "listId": list_id,
            "addedBookmarks": results,
            "totalProcessed": len(ids),
        }

    async def remove_bookmarks(
        self, list_id: str, bookmark_ids: Union[str, List[str]]
    ) -> Dict[str, Any]:
        list_id = require_id(list_id, "List ID")
        ids = parse_id_list(bookmark_ids)
        if not ids:
            raise ValidationError("At least one bookmark ID is required", field="bookmarkIds")

        results = []
        for bookmark_id in ids:
            try:
                await self._send("DELETE", f"lists/{list_id}/bookmarks/{bookmark_id}")
                results.append({"bookmarkId": bookmark_id, "success": True})
            except KarakeepAdapterError as e:
                self.logger.warning(
                    f"Failed to remove bookmark {bookmark_id} from list {list_id}: {e}"
                )
                results.append(
                    {"bookmarkId": bookmark_id, "success": False, "error": str(e)}
                )

        return {
            "success": all(result["success"] for result in results),
            "listId": list_id,
            "removedBookmarks": results,
            "totalProcessed": len(ids),
        }
