"""Derived views over cached payloads.

Pure functions only: each takes a payload and returns a new structure without
touching its input. They are recomputed on every cache write and never
patched incrementally.

Grouping rule for categories outside the known order: they are kept and
appended after the known categories, in the order they are first seen.
"""

from typing import Iterable, Sequence

from app.models import (
    LocationAnalytics,
    LocationRecord,
    LocationUsage,
    Notification,
    RideEndpoints,
    SuggestionRecord,
    SuggestionRole,
)

# Category display order for consistent UI
CATEGORY_ORDER: tuple[str, ...] = (
    "Universities & Colleges",
    "Student Hostel & PG Zones",
    "Transport Hubs",
    "Residential & Society Zones",
    "Malls & Commercial Areas",
    "Major Landmarks & Offices",
)

GroupedView = dict[str, list[LocationRecord]]


def select_city_locations(records: Iterable[LocationRecord], city: str) -> list[LocationRecord]:
    """Keep active locations of one city, stable-sorted by display order."""
    selected = [r for r in records if r.city == city and r.active]
    return sorted(selected, key=lambda r: r.display_order)


def build_grouped(
    records: Sequence[LocationRecord],
    category_order: Sequence[str] = CATEGORY_ORDER,
) -> GroupedView:
    """Group locations by category in a fixed priority order.

    Categories with no records are left out. Categories missing from
    ``category_order`` come after the known ones, in first-seen order.
    Records keep their input order within a category.

    Args:
        records: Locations, already in display order.
        category_order: Known categories, highest priority first.

    Returns:
        A new mapping of category to its records.
    """
    buckets: dict[str, list[LocationRecord]] = {}
    for record in records:
        buckets.setdefault(record.category, []).append(record)

    grouped: GroupedView = {}
    for category in category_order:
        if buckets.get(category):
            grouped[category] = buckets[category]
    for category, items in buckets.items():
        if category not in grouped:
            grouped[category] = items
    return grouped


def find_location_by_name(records: Iterable[LocationRecord], name: str) -> LocationRecord | None:
    for record in records:
        if record.name == name:
            return record
    return None


def build_suggestions(rides: Sequence[RideEndpoints]) -> list[SuggestionRecord]:
    """Rank location names by how often they appear as a ride endpoint.

    Names are trimmed and deduplicated case-insensitively. The first-seen
    casing is kept. Sorting is stable: on equal counts, the name seen first
    comes first.

    Args:
        rides: Ride endpoints in API order.

    Returns:
        Suggestions, most used first.
    """
    # lowered name -> [display name, from count, to count], in first-seen order
    counts: dict[str, list] = {}

    def _count(raw: str, slot: int) -> None:
        name = raw.strip()
        if not name:
            return
        lowered = name.lower()
        if lowered not in counts:
            counts[lowered] = [name, 0, 0]
        counts[lowered][slot] += 1

    for ride in rides:
        _count(ride.from_location, 1)
        _count(ride.to_location, 2)

    suggestions: list[SuggestionRecord] = []
    for name, from_count, to_count in counts.values():
        if from_count and not to_count:
            role = SuggestionRole.SOURCE
        elif to_count and not from_count:
            role = SuggestionRole.DESTINATION
        else:
            role = SuggestionRole.BOTH
        suggestions.append(
            SuggestionRecord(name=name, count=from_count + to_count, role=role)
        )

    suggestions.sort(key=lambda s: -s.count)
    return suggestions


def filter_suggestions(
    suggestions: Sequence[SuggestionRecord], query: str | None, limit: int = 8
) -> list[SuggestionRecord]:
    """Suggestions matching a typed query.

    Queries shorter than two characters return the top ``limit`` suggestions.
    Longer queries match case-insensitive substrings.
    """
    if not query or len(query) < 2:
        return list(suggestions[:limit])
    needle = query.lower().strip()
    return [s for s in suggestions if needle in s.name.lower()][:limit]


def build_location_analytics(
    rides: Sequence[RideEndpoints], limit: int = 15
) -> LocationAnalytics:
    """Top source and destination names, counted separately per role."""
    from_counts: dict[str, LocationUsage] = {}
    to_counts: dict[str, LocationUsage] = {}

    for ride in rides:
        for raw, bucket in ((ride.from_location, from_counts), (ride.to_location, to_counts)):
            name = raw.strip()
            if not name:
                continue
            usage = bucket.setdefault(name.lower(), LocationUsage(name=name, count=0))
            usage.count += 1

    return LocationAnalytics(
        top_from_locations=sorted(from_counts.values(), key=lambda u: -u.count)[:limit],
        top_to_locations=sorted(to_counts.values(), key=lambda u: -u.count)[:limit],
    )


def count_unread(notifications: Iterable[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)


def latest_notifications(
    notifications: Sequence[Notification], limit: int | None = None
) -> list[Notification]:
    """Notifications newest first; undated ones keep API order at the end."""
    dated = [n for n in notifications if n.created_at is not None]
    undated = [n for n in notifications if n.created_at is None]
    ordered = sorted(dated, key=lambda n: n.created_at, reverse=True) + undated
    return ordered[:limit] if limit is not None else ordered
