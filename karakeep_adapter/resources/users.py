"""
User operations for the Karakeep API.
"""

from typing import Any

from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.utils.error_handler import APIError

_AUTH_MESSAGES = {
    401: "Authentication failed. Please check your API key.",
    403: "Access denied. Your API key does not have permission to read user data.",
}


class UsersResource(BaseResource):
    """The authenticated user's profile and statistics."""

    resource_name = "users"
    operations = {
        "get_current_user": "get_current_user",
        "getCurrentUser": "get_current_user",
        "get_user_stats": "get_user_stats",
        "getUserStats": "get_user_stats",
    }

    async def _get(self, endpoint: str) -> Any:
        try:
            return await self._request_data("GET", endpoint)
        except APIError as e:
            message = _AUTH_MESSAGES.get(e.status_code)
            if message is None:
                raise
            raise APIError(
                message, code=e.code, status_code=e.status_code, details=e.details
            ) from e

    async def get_current_user(self) -> Any:
        return await self._get("users/me")

    async def get_user_stats(self) -> Any:
        return await self._get("users/me/stats")
