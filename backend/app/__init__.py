"""Ride Share data layer backend."""
