"""Consumer adapters and the data layer that wires them together."""

from .service import (
    LOCATIONS_TTL,
    NOTIFICATIONS_POLL_INTERVAL,
    SUGGESTIONS_KEY,
    SUGGESTIONS_TTL,
    DataLayer,
    DatasetAdapter,
    LocationsAdapter,
    NotificationFeedAdapter,
    NotificationsAdapter,
    ReadResult,
    SuggestionsAdapter,
    UnreadNotificationsAdapter,
    create_data_layer,
)

__all__ = [
    "LOCATIONS_TTL",
    "NOTIFICATIONS_POLL_INTERVAL",
    "SUGGESTIONS_KEY",
    "SUGGESTIONS_TTL",
    "DataLayer",
    "DatasetAdapter",
    "LocationsAdapter",
    "NotificationFeedAdapter",
    "NotificationsAdapter",
    "ReadResult",
    "SuggestionsAdapter",
    "UnreadNotificationsAdapter",
    "create_data_layer",
]
