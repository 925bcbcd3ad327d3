# services/__init__.py
"""
services package: business logic (locations, place search, map, auth)
"""

__all__ = [
    "get_location_repository",
    "get_places_client",
    "get_oauth_client",
    "PlaceSearchController",
]
