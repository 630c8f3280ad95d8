# transcriptions_Server_API/app/core/Rendering/__init__.py
from .Listing import GROUPINGS, ListingGroup, ListingService, normalize_grouping
from .Renderer import PageRenderer

__all__ = ["GROUPINGS", "ListingGroup", "ListingService", "PageRenderer", "normalize_grouping"]
