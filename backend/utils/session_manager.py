# utils/session_manager.py
"""
Session Store

Mirrors the signed session cookie into a typed Session and is the one place
sign-in / sign-out / refresh are written. A store is constructed per request
by AuthGateMiddleware and handed to routes through `get_session_store`.
"""

import secrets
from enum import Enum
from typing import Any, Callable, List, MutableMapping, Optional

from fastapi import Depends
from pydantic import ValidationError
from starlette.requests import HTTPConnection

from models.auth_schema import Session, User
from services.auth_service import AuthError, OAuthClient
from utils.logger import logger

SESSION_KEY = "auth_session"
STATE_KEY = "oauth_state"


class AuthEvent(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"


Listener = Callable[[AuthEvent, Optional[Session]], None]


class SessionStore:
    def __init__(self, storage: MutableMapping[str, Any]):
        self._storage = storage
        self._listeners: List[Listener] = []
        self._session = self._load()

    def _load(self) -> Optional[Session]:
        raw = self._storage.get(SESSION_KEY)
        if not raw:
            return None
        try:
            return Session.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"⚠️ Dropping unreadable session cookie: {e}")
            self._storage.pop(SESSION_KEY, None)
            return None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[User]:
        return self._session.user if self._session else None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register for session changes; returns the unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _change(self, event: AuthEvent, session: Optional[Session]) -> None:
        self._session = session
        if session is None:
            self._storage.pop(SESSION_KEY, None)
        else:
            self._storage[SESSION_KEY] = session.model_dump(mode="json")
        logger.debug(f"🔐 Auth event {event.value}")
        for listener in list(self._listeners):
            listener(event, session)

    def set_session(self, session: Session) -> None:
        self._change(AuthEvent.SIGNED_IN, session)

    def sign_in(self, oauth: OAuthClient, redirect_uri: str) -> str:
        """
        Start the OAuth redirect

        Args:
            oauth: provider client
            redirect_uri: absolute callback URL

        Returns:
            Provider URL to send the browser to
        """
        state = secrets.token_urlsafe(24)
        self._storage[STATE_KEY] = state
        return oauth.authorization_url(redirect_uri, state)

    def consume_state(self, state: Optional[str]) -> bool:
        expected = self._storage.pop(STATE_KEY, None)
        if not expected or not state:
            return False
        return secrets.compare_digest(expected, state)

    def sign_out(self) -> None:
        if self._session is not None:
            logger.info(f"🔐 Signing out {self._session.user.email or self._session.user.id}")
        self._change(AuthEvent.SIGNED_OUT, None)

    def refresh_if_expired(self, oauth: OAuthClient) -> bool:
        """
        Renew an expired access token.

        A failed refresh of any kind signs the user out, so a broken cookie
        never outlives one request.

        Args:
            oauth: client used for the refresh grant

        Returns:
            True when the session is usable afterwards
        """
        if self._session is None:
            return False
        if not self._session.is_expired():
            return True
        try:
            refreshed = oauth.refresh_session(self._session)
        except AuthError as e:
            logger.warning(f"⚠️ Session refresh failed, signing out: {e}")
            self.sign_out()
            return False
        except Exception as e:
            logger.error(f"❌ Unexpected session refresh error, signing out: {e}", exc_info=True)
            self.sign_out()
            return False
        self._change(AuthEvent.TOKEN_REFRESHED, refreshed)
        return True


def get_session_store(conn: HTTPConnection) -> SessionStore:
    """FastAPI dependency: the store built for this request"""
    store = getattr(conn.state, "session_store", None)
    if store is None:
        store = SessionStore(conn.session)
        conn.state.session_store = store
    return store


class SignInRequired(Exception):
    """Raised by `require_user` when the request carries no session"""


def require_user(store: SessionStore = Depends(get_session_store)) -> User:
    if store.user is None:
        raise SignInRequired()
    return store.user
