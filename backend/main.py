# main.py
"""
Favorite Places API

FastAPI entry point: session cookie, route protection, routers.
Run with `uvicorn main:app --reload --port 3001` from backend/.
"""

from typing import Callable, Optional
from urllib.parse import quote

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import RedirectResponse
from starlette.middleware.sessions import SessionMiddleware

from models.auth_schema import SessionResponse
from routers import auth, locations, map, places
from services.auth_service import OAuthClient, get_oauth_client
from utils.auth_gate import AuthGateMiddleware
from utils.config import Settings, get_settings
from utils.logger import logger
from utils.session_manager import SessionStore, SignInRequired, get_session_store


def create_app(
    settings: Optional[Settings] = None,
    oauth_factory: Callable[[], OAuthClient] = get_oauth_client,
) -> FastAPI:
    """
    Build the application

    Args:
        settings: defaults to the cached environment settings
        oauth_factory: returns the OAuth client used by the auth gate and the
            auth routes

    Returns:
        FastAPI app with session cookie, route protection and all routers
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Favorite Places API",
        description="Save, tag, rate and map favorite food & drink spots",
        version="1.0.0",
        debug=settings.DEBUG,
    )

    missing = settings.missing_required()
    if missing:
        logger.warning(f"⚠️ Missing required environment variables: {', '.join(missing)}")

    app.state.oauth_factory = oauth_factory

    # Added first so it runs inside SessionMiddleware
    app.add_middleware(AuthGateMiddleware, resolve_oauth=oauth_factory)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SESSION_SECRET_KEY,
        session_cookie=settings.SESSION_COOKIE_NAME,
        same_site="lax",
        https_only=not settings.DEBUG,
    )

    app.include_router(auth.router)
    app.include_router(locations.router)
    app.include_router(map.router)
    app.include_router(places.router)

    @app.exception_handler(SignInRequired)
    async def sign_in_required(request: Request, exc: SignInRequired):
        logger.info(f"🔐 Sign-in required for {request.url.path}")
        return RedirectResponse(f"/?error={quote('Please sign in to continue.')}", status_code=303)

    @app.get("/", response_model=SessionResponse, summary="Home")
    def home(
        error: Optional[str] = Query(None, description="Message from a failed sign-in"),
        store: SessionStore = Depends(get_session_store),
    ) -> SessionResponse:
        return SessionResponse(user=store.user, notice=error)

    @app.get("/health", summary="Health check")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=get_settings().PORT, reload=get_settings().DEBUG)
