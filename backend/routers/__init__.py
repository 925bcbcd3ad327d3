# routers/__init__.py
"""
routers package: API endpoints
- auth.py
- locations.py
- map.py
- places.py
"""

__all__ = ["auth", "locations", "map", "places"]
