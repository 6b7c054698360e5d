"""
Asset operations for the Karakeep API.

Assets are uploaded files (images, PDFs, archives) that bookmarks refer to.
Uploads go either as a multipart file or as a URL the server fetches itself.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from karakeep_adapter.core.data_models import FileUpload
from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import ValidationError
from karakeep_adapter.utils.validation import require_fields, require_id, validate_url

MAX_UPLOAD_SIZE = 50 * 1024 * 1024

ALLOWED_MIME_TYPES = (
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "image/svg+xml",
    "application/pdf",
    "text/plain",
    "text/html",
    "text/markdown",
    "application/json",
    "application/xml",
    "video/mp4",
    "video/webm",
    "video/ogg",
    "audio/mp3",
    "audio/wav",
    "audio/ogg",
)

DEFAULT_FILENAME = "uploaded-file"

_API_PATH_PREFIX = re.compile(r"^.*/api/v1/")


class AssetsResource(BaseResource):
    """Upload, inspect and download assets."""

    resource_name = "assets"
    operations = {
        "upload": "upload",
        "get_by_id": "get_by_id",
        "getById": "get_by_id",
        "download": "download",
    }

    async def upload(
        self,
        content: Optional[bytes] = None,
        file_url: Optional[str] = None,
        filename: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> Any:
        """
        Upload an asset.

        Exactly one of ``content`` or ``file_url`` is used; binary content
        wins when both are given.

        Args:
            content: Raw file bytes
            file_url: URL the server should fetch the file from
            filename: File name to record
            mime_type: MIME type of ``content``

        Raises:
            ValidationError: On oversize files, unsupported types or bad URLs
        """
        if content is not None:
            if isinstance(content, str):
                content = content.encode("utf-8")
            final_mime_type = mime_type or "application/octet-stream"

            if len(content) > MAX_UPLOAD_SIZE:
                raise ValidationError(
                    f"File size exceeds maximum limit of "
                    f"{MAX_UPLOAD_SIZE // (1024 * 1024)}MB",
                    field="file",
                )
            if final_mime_type not in ALLOWED_MIME_TYPES:
                raise ValidationError(
                    f"File type {final_mime_type} is not supported. "
                    f"Allowed types: {', '.join(ALLOWED_MIME_TYPES)}",
                    field="mimeType",
                )

            upload = FileUpload(
                content=bytes(content),
                filename=(filename or "").strip() or DEFAULT_FILENAME,
                mime_type=final_mime_type,
            )
            self.logger.debug(f"Uploading {upload.filename} ({upload.size} bytes)")
            return await self._request_data(
                "POST",
                "assets",
                body=upload,
                headers={"Content-Type": "multipart/form-data"},
            )

        require_fields({"fileUrl": file_url}, ["fileUrl"])
        if not validate_url(file_url):
            raise ValidationError("Invalid file URL format", field="fileUrl")

        body: Dict[str, Any] = {"url": file_url}
        if filename and filename.strip():
            body["filename"] = filename.strip()

        return await self._request_data("POST", "assets", body=body)

    async def get_by_id(self, asset_id: str) -> Any:
        asset_id = require_id(asset_id, "Asset ID")
        return await self._request_data("GET", f"assets/{asset_id}")

    async def download(
        self,
        asset_id: str,
        return_format: str = "binary",
        binary_property_name: str = "data",
    ) -> Dict[str, Any]:
        """
        Resolve an asset's download URL, optionally fetching the file.

        Args:
            asset_id: Asset to download
            return_format: ``url`` for metadata only, ``binary`` to fetch content
            binary_property_name: Key for the file under ``binary``

        Returns:
            For ``url``: assetId, downloadUrl, filename, mimeType and size.
            For ``binary``: ``{"json": metadata, "binary": {name: file}}``.
        """
        asset_id = require_id(asset_id, "Asset ID")
        if return_format not in ("binary", "url"):
            raise ValidationError(
                f"Invalid return format: {return_format}", field="returnFormat"
            )

        asset = await self._request_data("GET", f"assets/{asset_id}")
        if not isinstance(asset, dict):
            asset = {}
        download_url = asset.get("url") or asset.get("downloadUrl")

        if return_format == "url":
            return {
                "assetId": asset_id,
                "downloadUrl": download_url,
                "filename": asset.get("filename"),
                "mimeType": asset.get("mimeType"),
                "size": asset.get("size"),
            }

        if not download_url:
            raise ValidationError("Asset download URL not available")

        response = await self._send(
            "GET", _API_PATH_PREFIX.sub("", download_url), raw_response=True
        )
        file_data = response.data or b""

        return {
            "json": {
                "assetId": asset_id,
                "filename": asset.get("filename"),
                "mimeType": asset.get("mimeType"),
                "size": asset.get("size"),
                "downloadedAt": datetime.now(timezone.utc).isoformat(),
            },
            "binary": {
                binary_property_name: {
                    "data": file_data,
                    "mimeType": asset.get("mimeType"),
                    "fileName": asset.get("filename"),
                }
            },
        }
