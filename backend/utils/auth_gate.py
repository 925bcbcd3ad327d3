# utils/auth_gate.py
"""
Route protection

ASGI middleware that builds the request's SessionStore, refreshes an expired
token, and turns away unauthenticated requests to protected paths.
Must sit inside SessionMiddleware.
"""

import asyncio
from typing import Callable

from starlette.requests import HTTPConnection
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp, Receive, Scope, Send
from starlette.websockets import WebSocketClose

from services.auth_service import OAuthClient
from utils.logger import logger
from utils.session_manager import SessionStore

PROTECTED_PATHS = ("/add", "/list", "/map")
CALLBACK_PATH = "/auth/callback"

# RFC 6455 policy violation
WS_POLICY_VIOLATION = 1008


def current_oauth_client(conn: HTTPConnection) -> OAuthClient:
    """FastAPI dependency: the OAuth client configured on the app"""
    return conn.app.state.oauth_factory()


def is_protected(path: str) -> bool:
    if path.startswith(CALLBACK_PATH):
        return False
    return any(path == prefix or path.startswith(prefix + "/") for prefix in PROTECTED_PATHS)


class AuthGateMiddleware:
    def __init__(self, app: ASGIApp, resolve_oauth: Callable[[], OAuthClient]):
        self.app = app
        self.resolve_oauth = resolve_oauth

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        store = SessionStore(scope["session"])
        scope.setdefault("state", {})["session_store"] = store
        path = scope["path"]

        if path.startswith(CALLBACK_PATH):
            await self.app(scope, receive, send)
            return

        if store.session is not None and store.session.is_expired():
            await asyncio.to_thread(store.refresh_if_expired, self.resolve_oauth())

        if is_protected(path) and not store.is_authenticated:
            logger.info(f"🔐 Unauthorized access to {path}, redirecting home")
            if scope["type"] == "websocket":
                await WebSocketClose(code=WS_POLICY_VIOLATION)(scope, receive, send)
            else:
                await RedirectResponse("/", status_code=303)(scope, receive, send)
            return

        await self.app(scope, receive, send)
