"""Core data models for the ride share data layer.

Pydantic models for the records served by the remote API (locations, rides,
notifications), the derived suggestion records, and the error envelope used
by the HTTP surface.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator


class SuggestionRole(str, Enum):
    """Which ride endpoint a suggested location has been used as."""

    SOURCE = "source"
    DESTINATION = "destination"
    BOTH = "both"


class LocationRecord(BaseModel):
    """A reference pickup/drop location curated by admins.

    ``name`` is the effective identity used when a rider picks a location,
    even though it is only guaranteed unique within a category.
    """

    id: str = Field(..., min_length=1, description="Unique location identifier")
    name: str = Field(..., min_length=1, description="Display name")
    category: str = Field(..., description="Category this location is grouped under")
    city: str = Field(..., description="City the location belongs to")
    active: bool = Field(default=True, description="Inactive locations are hidden")
    display_order: int = Field(default=0, description="Ordering within the catalog")

    @field_validator("active", mode="before")
    @classmethod
    def _active_default(cls, value: Any) -> Any:
        # Only an explicit false hides a location.
        return True if value is None else value

    @field_validator("display_order", mode="before")
    @classmethod
    def _display_order_default(cls, value: Any) -> Any:
        return 0 if value is None else value


class RideEndpoints(BaseModel):
    """The two endpoints of a posted ride, as typed by the rider."""

    from_location: str = Field(..., description="Where the ride starts")
    to_location: str = Field(..., description="Where the ride ends")


class SuggestionRecord(BaseModel):
    """A location name ranked by how often it appears in rides."""

    name: str = Field(..., description="First-seen casing of the location name")
    count: int = Field(..., ge=0, description="Occurrences as either endpoint")
    role: SuggestionRole = Field(..., description="Endpoint role(s) it was seen as")


class LocationUsage(BaseModel):
    """Usage count for a single endpoint role (admin analytics)."""

    name: str
    count: int = Field(..., ge=0)


class LocationAnalytics(BaseModel):
    """Most used source and destination names across all rides."""

    top_from_locations: list[LocationUsage] = Field(default_factory=list)
    top_to_locations: list[LocationUsage] = Field(default_factory=list)


class Notification(BaseModel):
    """An in-app notification addressed to the current user."""

    id: str = Field(..., min_length=1)
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None
