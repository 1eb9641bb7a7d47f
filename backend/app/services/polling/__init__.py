"""Polling synchronizer for user-scoped datasets."""

from .service import PollingSynchronizer, Subscription

__all__ = [
    "PollingSynchronizer",
    "Subscription",
]
