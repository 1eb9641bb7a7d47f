"""Derived views: grouping, ranking and counting over cached payloads."""

from .service import (
    CATEGORY_ORDER,
    GroupedView,
    build_grouped,
    build_location_analytics,
    build_suggestions,
    count_unread,
    filter_suggestions,
    find_location_by_name,
    latest_notifications,
    select_city_locations,
)

__all__ = [
    "CATEGORY_ORDER",
    "GroupedView",
    "build_grouped",
    "build_location_analytics",
    "build_suggestions",
    "count_unread",
    "filter_suggestions",
    "find_location_by_name",
    "latest_notifications",
    "select_city_locations",
]
