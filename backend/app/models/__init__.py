"""Data models for the ride share data layer."""

from .core import (
    LocationAnalytics,
    LocationRecord,
    LocationUsage,
    Notification,
    RideEndpoints,
    SuggestionRecord,
    SuggestionRole,
)
from .errors import AppError, ErrorCode

__all__ = [
    "LocationAnalytics",
    "LocationRecord",
    "LocationUsage",
    "Notification",
    "RideEndpoints",
    "SuggestionRecord",
    "SuggestionRole",
    "AppError",
    "ErrorCode",
]
