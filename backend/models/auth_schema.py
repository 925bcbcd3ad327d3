# models/auth_schema.py
"""Authenticated identity and provider-issued session"""

import time
from typing import Optional

from pydantic import BaseModel, Field


class User(BaseModel):
    id: str
    email: str = ""
    name: str = ""
    avatar_url: Optional[str] = None


class Session(BaseModel):
    """Identity plus the opaque credential issued by the OAuth provider"""
    user: User
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = Field(None, description="Epoch seconds")

    def is_expired(self, leeway: float = 30.0) -> bool:
        if self.expires_at is None:
            return False
        return time.time() + leeway >= self.expires_at


class SessionResponse(BaseModel):
    user: Optional[User] = None
    notice: Optional[str] = None
