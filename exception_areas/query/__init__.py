"""Read-side package."""

from .query_service import QueryService, parse_bbox

__all__ = ["QueryService", "parse_bbox"]
