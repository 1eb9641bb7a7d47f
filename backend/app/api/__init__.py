"""HTTP API for the ride share data layer."""

from .routes import get_data_layer, router

__all__ = ["get_data_layer", "router"]
