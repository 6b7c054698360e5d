"""
Bookmark operations for the Karakeep API.

Bookmarks come in three kinds: links, plain text notes and uploaded assets.
"""

import json
from typing import Any, Dict, List, Optional, Union

from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import ValidationError
from karakeep_adapter.utils.validation import (
    format_date_for_api,
    parse_tags_string,
    require_id,
    validate_url,
)

BOOKMARK_TYPES = ("link", "text", "asset")
ASSET_TYPES = ("image", "pdf")
ATTACHABLE_ASSET_TYPES = (
    "screenshot",
    "assetScreenshot",
    "bannerImage",
    "fullPageArchive",
    "video",
    "bookmarkAsset",
    "precrawledArchive",
    "unknown",
)
CRAWL_PRIORITIES = ("low", "normal")
SORT_ORDERS = ("asc", "desc", "relevance")

# Update fields whose values are sent as ISO timestamps
_DATE_FIELDS = ("datePublished", "dateModified", "createdAt")


class BookmarksResource(BaseResource):
    """CRUD, search, tagging and asset attachment for bookmarks."""

    resource_name = "bookmarks"
    operations = {
        "get_all": "get_all",
        "getAll": "get_all",
        "get_by_id": "get_by_id",
        "getById": "get_by_id",
        "create": "create",
        "update": "update",
        "delete": "delete",
        "search": "search",
        "manage_tags": "manage_tags",
        "manageTags": "manage_tags",
        "manage_assets": "manage_assets",
        "manageAssets": "manage_assets",
    }

    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        archived: Union[bool, str, None] = None,
        tags: Union[str, List[str], None] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
    ) -> Any:
        """
        List bookmarks.

        Args:
            page: Page number
            limit: Page size
            archived: True/False to filter, ``"all"`` or None for no filter
            tags: Tag names, comma-separated or as a list
            start_date: Only bookmarks created after this date
            end_date: Only bookmarks created before this date
        """
        params = self._pagination(page, limit)
        if archived is not None and archived != "all":
            params["archived"] = archived
        tag_names = parse_tags_string(tags)
        if tag_names:
            params["tags"] = ",".join(tag_names)
        if start_date:
            params["startDate"] = format_date_for_api(start_date)
        if end_date:
            params["endDate"] = format_date_for_api(end_date)

        return await self._request_data("GET", "bookmarks", params=params)

    async def get_by_id(self, bookmark_id: str) -> Any:
        bookmark_id = require_id(bookmark_id, "Bookmark ID")
        return await self._request_data("GET", f"bookmarks/{bookmark_id}")

    async def create(
        self,
        bookmark_type: str = "link",
        url: Optional[str] = None,
        text: Optional[str] = None,
        source_url: Optional[str] = None,
        asset_type: Optional[str] = None,
        asset_id: Optional[str] = None,
        file_name: Optional[str] = None,
        title: Optional[str] = None,
        note: Optional[str] = None,
        summary: Optional[str] = None,
        archived: Optional[bool] = None,
        favourited: Optional[bool] = None,
        crawl_priority: str = "normal",
        tags: Union[str, List[str], None] = None,
    ) -> Any:
        """
        Create a bookmark.

        Args:
            bookmark_type: ``link``, ``text`` or ``asset``
            url: Target URL (link bookmarks)
            text: Note content (text bookmarks)
            source_url: Optional origin URL (text and asset bookmarks)
            asset_type: ``image`` or ``pdf`` (asset bookmarks)
            asset_id: Uploaded asset ID (asset bookmarks)
            file_name: Optional original file name (asset bookmarks)
            title: Optional title
            note: Optional personal note
            summary: Optional summary
            archived: Create in archived state
            favourited: Create as favourite
            crawl_priority: ``low`` or ``normal``
            tags: Tag names to attach

        Raises:
            ValidationError: If the fields required by the type are missing
        """
        if bookmark_type not in BOOKMARK_TYPES:
            raise ValidationError(
                f"Invalid bookmark type: {bookmark_type}", field="type"
            )

        body: Dict[str, Any] = {"type": bookmark_type}

        if bookmark_type == "link":
            if not url:
                raise ValidationError("URL is required for link bookmarks", field="url")
            if not validate_url(url):
                raise ValidationError("Invalid URL format", field="url")
            body["url"] = url
        elif bookmark_type == "text":
            if not text:
                raise ValidationError(
                    "Text content is required for text bookmarks", field="text"
                )
            body["text"] = text
            if source_url:
                if not validate_url(source_url):
                    raise ValidationError("Invalid source URL format", field="sourceUrl")
                body["sourceUrl"] = source_url
        else:
            if asset_type not in ASSET_TYPES:
                raise ValidationError(
                    "Asset type must be 'image' or 'pdf' for asset bookmarks",
                    field="assetType",
                )
            if not asset_id:
                raise ValidationError(
                    "Asset ID is required for asset bookmarks", field="assetId"
                )
            body["assetType"] = asset_type
            body["assetId"] = asset_id
            if file_name:
                body["fileName"] = file_name
            if source_url:
                if not validate_url(source_url):
                    raise ValidationError("Invalid source URL format", field="sourceUrl")
                body["sourceUrl"] = source_url

        if title:
            body["title"] = title
        if note:
            body["note"] = note
        if summary:
            body["summary"] = summary
        if archived is not None:
            body["archived"] = archived
        if favourited is not None:
            body["favourited"] = favourited
        if crawl_priority and crawl_priority != "normal":
            if crawl_priority not in CRAWL_PRIORITIES:
                raise ValidationError(
                    f"Invalid crawl priority: {crawl_priority}", field="crawlPriority"
                )
            body["crawlPriority"] = crawl_priority
        tag_names = parse_tags_string(tags)
        if tag_names:
            body["tags"] = tag_names

        return await self._request_data("POST", "bookmarks", body=body)

    async def update(
        self,
        bookmark_id: str,
        title: Optional[str] = None,
        note: Optional[str] = None,
        summary: Optional[str] = None,
        archived: Optional[bool] = None,
        favourited: Optional[bool] = None,
        url: Optional[str] = None,
        description: Optional[str] = None,
        author: Optional[str] = None,
        publisher: Optional[str] = None,
        date_published: Optional[str] = None,
        date_modified: Optional[str] = None,
        text: Optional[str] = None,
        asset_content: Optional[str] = None,
        created_at: Optional[str] = None,
    ) -> Any:
        """
        Patch a bookmark. At least one field must be given.

        Raises:
            ValidationError: If no field is given or a URL or date is malformed
        """
        bookmark_id = require_id(bookmark_id, "Bookmark ID")

        candidates = {
            "title": title,
            "note": note,
            "summary": summary,
            "archived": archived,
            "favourited": favourited,
            "url": url,
            "description": description,
            "author": author,
            "publisher": publisher,
            "datePublished": date_published,
            "dateModified": date_modified,
            "text": text,
            "assetContent": asset_content,
            "createdAt": created_at,
        }
        update_data = {key: value for key, value in candidates.items() if value is not None}
        self._require_update(update_data)

        if "url" in update_data and not validate_url(update_data["url"]):
            raise ValidationError("Invalid URL format", field="url")
        for key in _DATE_FIELDS:
            if key in update_data:
                update_data[key] = format_date_for_api(update_data[key])

        return await self._request_data(
            "PATCH", f"bookmarks/{bookmark_id}", body=update_data
        )

    async def delete(self, bookmark_id: str) -> Dict[str, Any]:
        bookmark_id = require_id(bookmark_id, "Bookmark ID")
        await self._send("DELETE", f"bookmarks/{bookmark_id}")
        return {"success": True, "id": bookmark_id}

    async def search(
        self,
        query: str,
        sort_order: str = "relevance",
        limit: Optional[int] = None,
        cursor: Optional[str] = None,
        include_content: bool = False,
    ) -> Any:
        """
        Full-text search over bookmarks.

        Args:
            query: Search expression
            sort_order: ``asc``, ``desc`` or ``relevance``
            limit: Maximum number of results
            cursor: Continuation cursor from a previous page
            include_content: Include crawled content in results
        """
        if not query or not str(query).strip():
            raise ValidationError("Search query is required", field="q")
        if sort_order not in SORT_ORDERS:
            raise ValidationError(f"Invalid sort order: {sort_order}", field="sortOrder")

        params: Dict[str, Any] = {"q": str(query).strip(), "sortOrder": sort_order}
        if limit:
            params["limit"] = limit
        if cursor:
            params["cursor"] = cursor
        if include_content:
            params["includeContent"] = True

        return await self._request_data("GET", "bookmarks/search", params=params)

    async def manage_tags(
        self,
        bookmark_id: str,
        action: str = "add",
        tags: Union[str, List[str], None] = None,
        tags_json: Optional[str] = None,
    ) -> Any:
        """
        Attach or detach tags.

        Tags are given either as names (``tags``) or as a JSON array of
        ``{"tagId": ..., "tagName": ...}`` objects (``tags_json``).

        Args:
            bookmark_id: Target bookmark
            action: ``add`` or ``remove``
            tags: Tag names
            tags_json: JSON array of tag objects
        """
        bookmark_id = require_id(bookmark_id, "Bookmark ID")
        if action not in ("add", "remove"):
            raise ValidationError(f"Invalid tag action: {action}", field="action")

        if tags_json:
            try:
                tag_objects = json.loads(tags_json)
            except ValueError:
                raise ValidationError("Tags must be valid JSON", field="tags")
            if not isinstance(tag_objects, list):
                raise ValidationError("Tags JSON must be an array", field="tags")
        else:
            tag_objects = [{"tagName": name} for name in parse_tags_string(tags)]

        if not tag_objects:
            raise ValidationError("At least one tag is required", field="tags")

        method = "POST" if action == "add" else "DELETE"
        return await self._request_data(
            method, f"bookmarks/{bookmark_id}/tags", body={"tags": tag_objects}
        )

    async def manage_assets(
        self,
        bookmark_id: str,
        action: str = "attach",
        asset_id: Optional[str] = None,
        asset_type: str = "bookmarkAsset",
        current_asset_id: Optional[str] = None,
    ) -> Any:
        """
        Attach, replace or detach an asset on a bookmark.

        Args:
            bookmark_id: Target bookmark
            action: ``attach``, ``replace`` or ``detach``
            asset_id: Asset to attach, or the replacement asset
            asset_type: Attachment role for ``attach``
            current_asset_id: Asset being replaced or detached
        """
        bookmark_id = require_id(bookmark_id, "Bookmark ID")

        if action == "attach":
            asset_id = require_id(asset_id, "Asset ID")
            if asset_type not in ATTACHABLE_ASSET_TYPES:
                raise ValidationError(f"Invalid asset type: {asset_type}", field="assetType")
            return await self._request_data(
                "POST",
                f"bookmarks/{bookmark_id}/assets",
                body={"id": asset_id, "assetType": asset_type},
            )

        if action == "replace":
            current_asset_id = require_id(current_asset_id, "Current asset ID")
            asset_id = require_id(asset_id, "New asset ID")
            await self._send(
                "PUT",
                f"bookmarks/{bookmark_id}/assets/{current_asset_id}",
                body={"assetId": asset_id},
            )
            return {"success": True, "action": "replace", "bookmarkId": bookmark_id}

        if action == "detach":
            current_asset_id = require_id(current_asset_id, "Asset ID")
            await self._send(
                "DELETE", f"bookmarks/{bookmark_id}/assets/{current_asset_id}"
            )
            return {"success": True, "action": "detach", "bookmarkId": bookmark_id}

        raise ValidationError(f"Invalid asset action: {action}", field="action")
