"""
Karakeep resource handlers.
"""

from karakeep_adapter.resources.assets import AssetsResource
from karakeep_adapter.resources.base import BaseResource
from karakeep_adapter.resources.bookmarks import BookmarksResource
from karakeep_adapter.resources.highlights import HighlightsResource
from karakeep_adapter.resources.lists import ListsResource
from karakeep_adapter.resources.tags import TagsResource
from karakeep_adapter.resources.users import UsersResource

RESOURCE_CLASSES = {
    "bookmarks": BookmarksResource,
    "lists": ListsResource,
    "tags": TagsResource,
    "highlights": HighlightsResource,
    "users": UsersResource,
    "assets": AssetsResource,
}

__all__ = [
    "RESOURCE_CLASSES",
    "AssetsResource",
    "BaseResource",
    "BookmarksResource",
    "HighlightsResource",
    "ListsResource",
    "TagsResource",
    "UsersResource",
]
