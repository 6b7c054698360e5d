"""
Highlight operations for the Karakeep API.
"""

from typing import Any, Dict, Optional

from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import ValidationError
from karakeep_adapter.utils.validation import require_fields, require_id

HIGHLIGHT_COLORS = ("yellow", "red", "green", "blue")


def _check_color(color: str) -> None:
    if color not in HIGHLIGHT_COLORS:
        raise ValidationError(
            f"Invalid highlight color: {color}. Expected one of {', '.join(HIGHLIGHT_COLORS)}",
            field="color",
        )


class HighlightsResource(BaseResource):
    """Text highlights on bookmarks."""

    resource_name = "highlights"
    operations = {
        "get_all": "get_all",
        "getAll": "get_all",
        "get_by_id": "get_by_id",
        "getById": "get_by_id",
        "create": "create",
        "update": "update",
        "delete": "delete",
    }

    async def get_all(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        bookmark_id: Optional[str] = None,
    ) -> Any:
        params = self._pagination(page, limit)
        if bookmark_id:
            params["bookmarkId"] = bookmark_id
        return await self._request_data("GET", "highlights", params=params)

    async def get_by_id(self, highlight_id: str) -> Any:
        highlight_id = require_id(highlight_id, "Highlight ID")
        return await self._request_data("GET", f"highlights/{highlight_id}")

    async def create(
        self,
        bookmark_id: str,
        text: str,
        start_offset: int,
        end_offset: int,
        color: str = "yellow",
        note: Optional[str] = None,
    ) -> Any:
        """
        Highlight a span of a bookmark's content.

        Raises:
            ValidationError: If a field is missing, offsets are out of order
                or the colour is unknown
        """
        require_fields(
            {
                "bookmarkId": bookmark_id,
                "text": text,
                "startOffset": start_offset,
                "endOffset": end_offset,
            },
            ["bookmarkId", "text", "startOffset", "endOffset"],
        )
        start_offset = int(start_offset)
        end_offset = int(end_offset)
        if start_offset < 0:
            raise ValidationError("Start offset must be non-negative", field="startOffset")
        if end_offset <= start_offset:
            raise ValidationError(
                "End offset must be greater than start offset", field="endOffset"
            )
        _check_color(color)

        body: Dict[str, Any] = {
            "bookmarkId": bookmark_id,
            "text": text,
            "startOffset": start_offset,
            "endOffset": end_offset,
            "color": color,
        }
        if note:
            body["note"] = note

        return await self._request_data("POST", "highlights", body=body)

    async def update(
        self,
        highlight_id: str,
        text: Optional[str] = None,
        start_offset: Optional[int] = None,
        end_offset: Optional[int] = None,
        color: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Any:
        highlight_id = require_id(highlight_id, "Highlight ID")

        update_data: Dict[str, Any] = {}
        if text is not None:
            update_data["text"] = text
        if start_offset is not None:
            start_offset = int(start_offset)
            if start_offset < 0:
                raise ValidationError(
                    "Start offset must be non-negative", field="startOffset"
                )
            update_data["startOffset"] = start_offset
        if end_offset is not None:
            end_offset = int(end_offset)
            if end_offset < 0:
                raise ValidationError("End offset must be non-negative", field="endOffset")
            update_data["endOffset"] = end_offset
        if start_offset is not None and end_offset is not None and end_offset <= start_offset:
            raise ValidationError(
                "End offset must be greater than start offset", field="endOffset"
            )
        if color is not None:
            _check_color(color)
            update_data["color"] = color
        if note is not None:
            update_data["note"] = note
        self._require_update(update_data)

        return await self._request_data(
            "PATCH", f"highlights/{highlight_id}", body=update_data
        )

    async def delete(self, highlight_id: str) -> Dict[str, Any]:
        highlight_id = require_id(highlight_id, "Highlight ID")
        await self._send("DELETE", f"highlights/{highlight_id}")
        return {"success": True, "id": highlight_id}
