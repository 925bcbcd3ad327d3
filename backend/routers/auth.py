# routers/auth.py
"""
Auth Router - OAuth sign-in, callback, sign-out
"""

from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from models.auth_schema import SessionResponse
from services.auth_service import CodeExchangeError, OAuthClient
from utils.auth_gate import CALLBACK_PATH, current_oauth_client
from utils.config import get_settings
from utils.logger import logger
from utils.session_manager import SessionStore, get_session_store

router = APIRouter(
    prefix="/auth",
    tags=["Auth"]
)

SIGN_IN_FAILED = "There was a problem signing in. Please try again."


def redirect_home(error: Optional[str] = None) -> RedirectResponse:
    url = "/" if error is None else f"/?error={quote(error)}"
    return RedirectResponse(url, status_code=303)


def callback_url(request: Request) -> str:
    base = get_settings().PUBLIC_BASE_URL or str(request.base_url)
    return base.rstrip("/") + CALLBACK_PATH


@router.get("/signin", summary="Start OAuth sign-in")
def sign_in(
    request: Request,
    store: SessionStore = Depends(get_session_store),
    oauth: OAuthClient = Depends(current_oauth_client),
):
    if not oauth.client_id:
        logger.error("❌ OAuth client is not configured")
        return redirect_home(SIGN_IN_FAILED)

    url = store.sign_in(oauth, callback_url(request))
    logger.info("🔐 Sign in initiated")
    return RedirectResponse(url, status_code=303)


@router.get("/callback", summary="OAuth redirect endpoint")
def auth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    error: Optional[str] = Query(None),
    error_description: Optional[str] = Query(None),
    store: SessionStore = Depends(get_session_store),
    oauth: OAuthClient = Depends(current_oauth_client),
):
    """
    Exchange the authorization code for a session.

    Every outcome is a redirect: `/` on success, `/?error=<message>` otherwise.
    """
    try:
        if error:
            logger.error(f"❌ Auth error: {error} {error_description or ''}")
            return redirect_home(error_description or "Authentication failed")

        if code and store.consume_state(state):
            try:
                session = oauth.exchange_code_for_session(code, callback_url(request))
            except CodeExchangeError as e:
                logger.error(f"❌ Session exchange error: {e}")
                return redirect_home("Failed to create session")

            store.set_session(session)
            return redirect_home()

        logger.warning("⚠️ Callback without a usable code/state")
        return redirect_home("Invalid callback")

    except Exception as e:
        logger.error(f"❌ Unhandled auth callback error: {e}", exc_info=True)
        return redirect_home("An unexpected error occurred")


@router.post("/signout", summary="Sign out")
def sign_out(store: SessionStore = Depends(get_session_store)):
    store.sign_out()
    return redirect_home()


@router.get("/session", response_model=SessionResponse, summary="Current identity")
def current_session(store: SessionStore = Depends(get_session_store)) -> SessionResponse:
    return SessionResponse(user=store.user)
