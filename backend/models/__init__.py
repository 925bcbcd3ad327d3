# models/__init__.py
"""
models package: Pydantic schemas
- location_schema.py
- place_schema.py
- map_schema.py
- auth_schema.py
"""

__all__ = ["location_schema", "place_schema", "map_schema", "auth_schema"]
