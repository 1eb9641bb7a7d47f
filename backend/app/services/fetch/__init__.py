"""Fetch primitive: authenticated JSON calls to the ride share API."""

from .service import ApiClient, RequestError, TokenGetter

__all__ = [
    "ApiClient",
    "RequestError",
    "TokenGetter",
]
