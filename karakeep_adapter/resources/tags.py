"""
Tag operations for the Karakeep API.

Creating or renaming a tag optionally checks for an existing tag with the same
name (case-insensitive) first.
"""

from typing import Any, Dict, Optional

from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import KarakeepAdapterError, ValidationError
from karakeep_adapter.utils.validation import require_id

MAX_TAG_NAME_LENGTH = 100


def _extract_tags(data: Any) -> list:
    """Tag searches return either a bare list or ``{"tags": [...]}``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("tags"), list):
        return data["tags"]
    return []


class TagsResource(BaseResource):
    """Tag listing, CRUD and tag-to-bookmark lookups."""

    resource_name = "tags"
    operations = {
        "get_all": "get_all",
        "getAll": "get_all",
        "get_by_id": "get_by_id",
        "getById": "get_by_id",
        "create": "create",
        "update": "update",
        "delete": "delete",
        "get_tagged_bookmarks": "get_tagged_bookmarks",
        "getTaggedBookmarks": "get_tagged_bookmarks",
    }

    @staticmethod
    def _check_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Tag name cannot be empty", field="name")
        if len(name) > MAX_TAG_NAME_LENGTH:
            raise ValidationError(
                f"Tag name cannot exceed {MAX_TAG_NAME_LENGTH} characters", field="name"
            )
        return name

    async def _ensure_unique(self, name: str, exclude_id: Optional[str] = None) -> None:
        """
        Raise if another tag already uses ``name``.

        A failing lookup is not fatal: the server remains the final arbiter.
        """
        try:
            data = await self._request_data("GET", "tags", params={"search": name})
        except KarakeepAdapterError as e:
            self.logger.debug(f"Duplicate check for tag '{name}' skipped: {e}")
            return

        for tag in _extract_tags(data):
            if not isinstance(tag, dict):
                continue
            if tag.get("id") == exclude_id:
                continue
            if str(tag.get("name", "")).lower() == name.lower():
                raise ValidationError(
                    f'Tag with name "{name}" already exists (ID: {tag.get("id")})',
                    field="name",
                )

    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        include_usage_stats: bool = False,
    ) -> Any:
        params = self._pagination(page, limit)
        if sort_by:
            params["sortBy"] = sort_by
        if sort_order:
            params["sortOrder"] = sort_order
        if include_usage_stats:
            params["includeUsageStats"] = True
        return await self._request_data("GET", "tags", params=params)

    async def get_by_id(self, tag_id: str, include_usage_stats: bool = False) -> Any:
        tag_id = require_id(tag_id, "Tag ID")
        params = {"includeUsageStats": True} if include_usage_stats else None
        return await self._request_data("GET", f"tags/{tag_id}", params=params)

    async def create(self, name: str, prevent_duplicates: bool = True) -> Any:
        """
        Create a tag.

        Args:
            name: Tag name, trimmed, at most 100 characters
            prevent_duplicates: Look for an existing tag with the same name first

        Raises:
            ValidationError: If the name is invalid or already taken
        """
        name = self._check_name(name)
        if prevent_duplicates:
            await self._ensure_unique(name)
        return await self._request_data("POST", "tags", body={"name": name})

    async def update(
        self, tag_id: str, name: Optional[str] = None, prevent_duplicates: bool = True
    ) -> Any:
        tag_id = require_id(tag_id, "Tag ID")
        update_data: Dict[str, Any] = {}
        if name is not None:
            update_data["name"] = self._check_name(name)
        self._require_update(update_data)

        if prevent_duplicates:
            await self._ensure_unique(update_data["name"], exclude_id=tag_id)
        return await self._request_data("PATCH", f"tags/{tag_id}", body=update_data)

    async def delete(self, tag_id: str, force: bool = False) -> Dict[str, Any]:
        """
        Delete a tag.

        Without ``force`` the tag must not be attached to any bookmark.
        """
        tag_id = require_id(tag_id, "Tag ID")

        if not force:
            data = await self._request_data(
                "GET", f"tags/{tag_id}/bookmarks", params={"limit": 1}
            )
            bookmarks = data.get("bookmarks") if isinstance(data, dict) else data
            if bookmarks:
                raise ValidationError(
                    "Cannot delete tag that is still attached to bookmarks. "
                    "Use force delete to remove it anyway."
                )

        params = {"force": True} if force else None
        await self._send("DELETE", f"tags/{tag_id}", params=params)
        return {"success": True, "id": tag_id}

    async def get_tagged_bookmarks(
        self,
        tag_id: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        archived: Optional[bool] = None,
        include_content: bool = False,
    ) -> Any:
        tag_id = require_id(tag_id, "Tag ID")
        params = self._pagination(page, limit)
        if sort_by:
            params["sortBy"] = sort_by
        if sort_order:
            params["sortOrder"] = sort_order
        if archived is not None:
            params["archived"] = archived
        if include_content:
            params["includeContent"] = True
        return await self._request_data("GET", f"tags/{tag_id}/bookmarks", params=params)
