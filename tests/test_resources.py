"""
Unit tests for the resource handlers.

Handlers run against a real facade over a scripted transport; assertions are
made on the request descriptors that reached the transport.
"""

from unittest.mock import patch

import pytest

from karakeep_adapter.core.data_models import FileUpload
from karakeep_adapter.resources import (
    AssetsResource,
    BookmarksResource,
    HighlightsResource,
    ListsResource,
    TagsResource,
    UsersResource,
)
from karakeep_adapter.utils.error_handler import APIError, ValidationError


# ============================================================================
# Bookmarks
# ============================================================================


class TestBookmarksResource:
    """Test bookmark operations."""

    @pytest.mark.asyncio
    async def test_create_link(self, make_api):
        api, transport = make_api([{"id": "b1", "type": "link"}])
        bookmarks = BookmarksResource(api)

        result = await bookmarks.create(
            url="https://example.com/article", tags="python, reading", favourited=True
        )

        assert result == {"id": "b1", "type": "link"}
        call = transport.calls[0]
        assert call.method == "POST"
        assert call.endpoint == "bookmarks"
        assert call.body == {
            "type": "link",
            "url": "https://example.com/article",
            "favourited": True,
            "tags": ["python", "reading"],
        }

    @pytest.mark.asyncio
    async def test_create_link_requires_valid_url(self, make_api):
        api, transport = make_api([{}])
        bookmarks = BookmarksResource(api)

        with pytest.raises(ValidationError, match="URL is required"):
            await bookmarks.create()
        with pytest.raises(ValidationError, match="Invalid URL format"):
            await bookmarks.create(url="example dot com")

        assert transport.call_count == 0

    @pytest.mark.asyncio
    async def test_create_text_with_source(self, make_api):
        api, transport = make_api([{"id": "b2"}])

        await BookmarksResource(api).create(
            bookmark_type="text",
            text="Remember this",
            source_url="https://example.com",
            crawl_priority="low",
        )

        assert transport.calls[0].body == {
            "type": "text",
            "text": "Remember this",
            "sourceUrl": "https://example.com",
            "crawlPriority": "low",
        }

    @pytest.mark.asyncio
    async def test_create_asset_requires_id(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="Asset ID is required"):
            await BookmarksResource(api).create(bookmark_type="asset", asset_type="pdf")

    @pytest.mark.asyncio
    async def test_get_all_params(self, make_api):
        api, transport = make_api([{"bookmarks": []}])

        await BookmarksResource(api).get_all(
            limit=20,
            archived="all",
            tags=["a", " b "],
            start_date="2024-01-15T10:30:00Z",
        )

        assert transport.calls[0].params == {
            "limit": 20,
            "tags": "a,b",
            "startDate": "2024-01-15T10:30:00.000Z",
        }

    @pytest.mark.asyncio
    async def test_update_requires_a_field(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="At least one field"):
            await BookmarksResource(api).update("b1")

    @pytest.mark.asyncio
    async def test_update_formats_dates(self, make_api):
        api, transport = make_api([{"id": "b1"}])

        await BookmarksResource(api).update(
            "b1", title="New", archived=False, date_published="2024-01-15"
        )

        call = transport.calls[0]
        assert call.method == "PATCH"
        assert call.endpoint == "bookmarks/b1"
        assert call.body == {
            "title": "New",
            "archived": False,
            "datePublished": "2024-01-15T00:00:00.000Z",
        }

    @pytest.mark.asyncio
    async def test_delete(self, make_api):
        api, transport = make_api([None])

        result = await BookmarksResource(api).delete("b1")

        assert result == {"success": True, "id": "b1"}
        assert transport.calls[0].method == "DELETE"

    @pytest.mark.asyncio
    async def test_search(self, make_api):
        api, transport = make_api([{"bookmarks": [], "nextCursor": None}])

        await BookmarksResource(api).search(
            " python ", sort_order="desc", limit=5, include_content=True
        )

        call = transport.calls[0]
        assert call.endpoint == "bookmarks/search"
        assert call.params == {
            "q": "python",
            "sortOrder": "desc",
            "limit": 5,
            "includeContent": True,
        }

    @pytest.mark.asyncio
    async def test_remove_tags(self, make_api):
        api, transport = make_api([{"detached": ["t1"]}])

        await BookmarksResource(api).manage_tags("b1", action="remove", tags="old, stale")

        call = transport.calls[0]
        assert call.method == "DELETE"
        assert call.endpoint == "bookmarks/b1/tags"
        assert call.body == {"tags": [{"tagName": "old"}, {"tagName": "stale"}]}

    @pytest.mark.asyncio
    async def test_tags_json(self, make_api):
        api, transport = make_api([{}])

        await BookmarksResource(api).manage_tags(
            "b1", tags_json='[{"tagId": "t1", "tagName": "x"}]'
        )

        assert transport.calls[0].body == {"tags": [{"tagId": "t1", "tagName": "x"}]}

    @pytest.mark.asyncio
    async def test_replace_asset(self, make_api):
        api, transport = make_api([None])

        result = await BookmarksResource(api).manage_assets(
            "b1", action="replace", asset_id="new", current_asset_id="old"
        )

        assert result == {"success": True, "action": "replace", "bookmarkId": "b1"}
        call = transport.calls[0]
        assert call.method == "PUT"
        assert call.endpoint == "bookmarks/b1/assets/old"
        assert call.body == {"assetId": "new"}

    @pytest.mark.asyncio
    async def test_execute_by_name(self, make_api):
        api, transport = make_api([{"id": "b1"}])

        result = await BookmarksResource(api).execute("getById", bookmark_id="b1")

        assert result == {"id": "b1"}
        assert transport.calls[0].endpoint == "bookmarks/b1"

    @pytest.mark.asyncio
    async def test_execute_unknown_operation(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match='"archiveAll" is not supported'):
            await BookmarksResource(api).execute("archiveAll")

    @pytest.mark.asyncio
    async def test_execute_bad_parameters(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="Invalid parameters"):
            await BookmarksResource(api).execute("getById", id="b1")


# ============================================================================
# Lists
# ============================================================================


class TestListsResource:
    """Test list operations."""

    @pytest.mark.asyncio
    async def test_create_manual(self, make_api):
        api, transport = make_api([{"id": "l1"}])

        await ListsResource(api).create(name=" Reading ", icon="📚")

        assert transport.calls[0].body == {"name": "Reading", "icon": "📚"}

    @pytest.mark.asyncio
    async def test_create_smart_requires_query(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="Query is required for smart lists"):
            await ListsResource(api).create(name="Auto", list_type="smart")

    @pytest.mark.asyncio
    async def test_name_length(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="100 characters or less"):
            await ListsResource(api).create(name="x" * 101)

    @pytest.mark.asyncio
    async def test_add_single_bookmark(self, make_api):
        api, transport = make_api([None])

        result = await ListsResource(api).add_bookmarks("l1", "b1")

        assert result == {"success": True, "listId": "l1", "bookmarkId": "b1", "data": {"data": None}}
        assert transport.calls[0].method == "PUT"
        assert transport.calls[0].endpoint == "lists/l1/bookmarks/b1"

    @pytest.mark.asyncio
    async def test_add_many_captures_failures(self, make_api):
        api, transport = make_api(
            [None, APIError("Not found", status_code=404), None]
        )

        result = await ListsResource(api).add_bookmarks("l1", "b1, b2, b3")

        assert result["success"] is False
        assert result["totalProcessed"] == 3
        assert [item["success"] for item in result["addedBookmarks"]] == [True, False, True]
        assert "Not found" in result["addedBookmarks"][1]["error"]

    @pytest.mark.asyncio
    async def test_remove_bookmarks(self, make_api):
        api, transport = make_api([None])

        result = await ListsResource(api).remove_bookmarks("l1", ["b1", "b2"])

        assert result["success"] is True
        assert [call.method for call in transport.calls] == ["DELETE", "DELETE"]


# ============================================================================
# Tags
# ============================================================================


class TestTagsResource:
    """Test tag operations."""

    @pytest.mark.asyncio
    async def test_create_checks_duplicates(self, make_api):
        api, transport = make_api([{"tags": [{"id": "t9", "name": "Reading"}]}])

        with pytest.raises(ValidationError) as exc_info:
            await TagsResource(api).create(" reading ")

        assert 'Tag with name "reading" already exists (ID: t9)' in exc_info.value.message
        assert transport.call_count == 1
        assert transport.calls[0].params == {"search": "reading"}

    @pytest.mark.asyncio
    async def test_create_unique(self, make_api):
        api, transport = make_api([[], {"id": "t1", "name": "reading"}])

        result = await TagsResource(api).create("reading")

        assert result == {"id": "t1", "name": "reading"}
        assert transport.calls[1].method == "POST"
        assert transport.calls[1].body == {"name": "reading"}

    @pytest.mark.asyncio
    async def test_failed_duplicate_lookup_is_ignored(self, make_api):
        api, transport = make_api(
            [APIError("Forbidden", status_code=403), {"id": "t1"}]
        )

        await TagsResource(api).create("reading")

        assert transport.calls[1].method == "POST"

    @pytest.mark.asyncio
    async def test_update_ignores_itself(self, make_api):
        api, transport = make_api([[{"id": "t1", "name": "Renamed"}], {"id": "t1"}])

        await TagsResource(api).update("t1", name="Renamed")

        assert transport.calls[1].method == "PATCH"

    @pytest.mark.asyncio
    async def test_name_limits(self, make_api):
        api, transport = make_api([{}])
        tags = TagsResource(api)

        with pytest.raises(ValidationError, match="cannot be empty"):
            await tags.create("   ")
        with pytest.raises(ValidationError, match="cannot exceed 100"):
            await tags.create("x" * 101)

    @pytest.mark.asyncio
    async def test_delete_in_use(self, make_api):
        api, transport = make_api([{"bookmarks": [{"id": "b1"}]}])

        with pytest.raises(ValidationError, match="still attached"):
            await TagsResource(api).delete("t1")

        assert transport.calls[0].endpoint == "tags/t1/bookmarks"
        assert transport.calls[0].params == {"limit": 1}

    @pytest.mark.asyncio
    async def test_force_delete(self, make_api):
        api, transport = make_api([None])

        result = await TagsResource(api).delete("t1", force=True)

        assert result == {"success": True, "id": "t1"}
        assert transport.call_count == 1
        assert transport.calls[0].params == {"force": True}


# ============================================================================
# Highlights
# ============================================================================


class TestHighlightsResource:
    """Test highlight operations."""

    @pytest.mark.asyncio
    async def test_create_defaults_to_yellow(self, make_api):
        api, transport = make_api([{"id": "h1"}])

        await HighlightsResource(api).create("b1", "quote", 0, 5)

        assert transport.calls[0].body == {
            "bookmarkId": "b1",
            "text": "quote",
            "startOffset": 0,
            "endOffset": 5,
            "color": "yellow",
        }

    @pytest.mark.asyncio
    async def test_offsets_must_be_ordered(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="greater than start offset"):
            await HighlightsResource(api).create("b1", "quote", 5, 5)

    @pytest.mark.asyncio
    async def test_invalid_color(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="Invalid highlight color"):
            await HighlightsResource(api).create("b1", "quote", 0, 5, color="purple")

    @pytest.mark.asyncio
    async def test_create_requires_fields(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="text is required"):
            await HighlightsResource(api).create("b1", "", 0, 5)

    @pytest.mark.asyncio
    async def test_update_note(self, make_api):
        api, transport = make_api([{"id": "h1"}])

        await HighlightsResource(api).update("h1", note="important")

        assert transport.calls[0].body == {"note": "important"}


# ============================================================================
# Users
# ============================================================================


class TestUsersResource:
    """Test user operations."""

    @pytest.mark.asyncio
    async def test_current_user(self, make_api):
        api, transport = make_api([{"id": "u1", "name": "Ada"}])

        assert await UsersResource(api).get_current_user() == {"id": "u1", "name": "Ada"}
        assert transport.calls[0].endpoint == "users/me"

    @pytest.mark.asyncio
    async def test_auth_failure_message(self, make_api):
        api, transport = make_api(
            [APIError("Unauthorized", code="UNAUTHORIZED", status_code=401)]
        )

        with pytest.raises(APIError) as exc_info:
            await UsersResource(api).get_user_stats()

        assert exc_info.value.status_code == 401
        assert exc_info.value.code == "UNAUTHORIZED"
        assert "check your API key" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_other_errors_unchanged(self, make_api):
        error = APIError("Not found", status_code=404)
        api, transport = make_api([error])

        with pytest.raises(APIError) as exc_info:
            await UsersResource(api).get_current_user()

        assert exc_info.value is error


# ============================================================================
# Assets
# ============================================================================


class TestAssetsResource:
    """Test asset operations."""

    @pytest.mark.asyncio
    async def test_binary_upload(self, make_api):
        api, transport = make_api([{"assetId": "a1"}])

        await AssetsResource(api).upload(
            content=b"%PDF-1.4", filename="doc.pdf", mime_type="application/pdf"
        )

        call = transport.calls[0]
        assert call.endpoint == "assets"
        assert call.headers == {"Content-Type": "multipart/form-data"}
        assert call.body == FileUpload(b"%PDF-1.4", "doc.pdf", "application/pdf")

    @pytest.mark.asyncio
    async def test_binary_upload_default_filename(self, make_api):
        api, transport = make_api([{}])

        await AssetsResource(api).upload(content=b"abc", mime_type="text/plain")

        assert transport.calls[0].body.filename == "uploaded-file"

    @pytest.mark.asyncio
    async def test_unsupported_type(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="is not supported"):
            await AssetsResource(api).upload(content=b"MZ", mime_type="application/x-msdownload")

    @pytest.mark.asyncio
    async def test_size_limit(self, make_api):
        api, transport = make_api([{}])

        with patch("karakeep_adapter.resources.assets.MAX_UPLOAD_SIZE", 4):
            with pytest.raises(ValidationError, match="exceeds maximum limit"):
                await AssetsResource(api).upload(content=b"12345", mime_type="text/plain")

    @pytest.mark.asyncio
    async def test_url_upload(self, make_api):
        api, transport = make_api([{"assetId": "a2"}])

        await AssetsResource(api).upload(
            file_url="https://example.com/image.png", filename=" image.png "
        )

        assert transport.calls[0].body == {
            "url": "https://example.com/image.png",
            "filename": "image.png",
        }

    @pytest.mark.asyncio
    async def test_url_upload_requires_url(self, make_api):
        api, transport = make_api([{}])

        with pytest.raises(ValidationError, match="fileUrl is required"):
            await AssetsResource(api).upload()

    @pytest.mark.asyncio
    async def test_download_url_format(self, make_api):
        asset = {
            "downloadUrl": "https://x.example/api/v1/assets/a1/download",
            "filename": "doc.pdf",
            "mimeType": "application/pdf",
            "size": 3,
        }
        api, transport = make_api([asset])

        result = await AssetsResource(api).download("a1", return_format="url")

        assert result == {
            "assetId": "a1",
            "downloadUrl": asset["downloadUrl"],
            "filename": "doc.pdf",
            "mimeType": "application/pdf",
            "size": 3,
        }

    @pytest.mark.asyncio
    async def test_download_binary(self, make_api):
        asset = {
            "url": "https://x.example/api/v1/assets/a1/download",
            "filename": "doc.pdf",
            "mimeType": "application/pdf",
            "size": 3,
        }
        api, transport = make_api([asset, b"abc"])

        result = await AssetsResource(api).download("a1")

        assert transport.calls[1].endpoint == "assets/a1/download"
        assert transport.calls[1].raw_response is True
        assert result["binary"]["data"] == {
            "data": b"abc",
            "mimeType": "application/pdf",
            "fileName": "doc.pdf",
        }
        assert result["json"]["assetId"] == "a1"
        assert "downloadedAt" in result["json"]

    @pytest.mark.asyncio
    async def test_download_keeps_file_bytes(self, make_api):
        asset = {
            "url": "https://x.example/api/v1/assets/a2/download",
            "filename": "export.json",
            "mimeType": "application/json",
        }
        content = b'{"data": [1, 2], "version": 3}'
        api, transport = make_api([asset, content])

        result = await AssetsResource(api).download("a2")

        assert result["binary"]["data"]["data"] == content

    @pytest.mark.asyncio
    async def test_download_without_url(self, make_api):
        api, transport = make_api([{"id": "a1"}])

        with pytest.raises(ValidationError, match="download URL not available"):
            await AssetsResource(api).download("a1")
