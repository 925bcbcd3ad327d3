# utils/__init__.py
"""
utils package: shared building blocks
- config.py
- logger.py
- database.py
- session_manager.py
- auth_gate.py
"""

__all__ = ["get_settings", "logger", "get_database", "SessionStore"]
