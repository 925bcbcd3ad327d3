# services/auth_service.py

"""
Auth Service

OAuth2 authorization-code flow against the configured provider (Google by
default): authorization URL, code exchange, token refresh, userinfo.
"""

import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from models.auth_schema import Session, User
from utils.config import get_settings
from utils.logger import logger


class AuthError(Exception):
    """The OAuth provider rejected a request or could not be reached"""


class CodeExchangeError(AuthError):
    """An authorization code could not be turned into a session"""


class OAuthClient:
    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        authorize_url: Optional[str] = None,
        token_url: Optional[str] = None,
        userinfo_url: Optional[str] = None,
        scopes: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.client_id = client_id or settings.OAUTH_CLIENT_ID
        self.client_secret = client_secret or settings.OAUTH_CLIENT_SECRET
        self.authorize_url = authorize_url or settings.OAUTH_AUTHORIZE_URL
        self.token_url = token_url or settings.OAUTH_TOKEN_URL
        self.userinfo_url = userinfo_url or settings.OAUTH_USERINFO_URL
        self.scopes = scopes or settings.OAUTH_SCOPES
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        """
        Build the provider consent URL

        Args:
            redirect_uri: absolute URL of our /auth/callback
            state: random value echoed back on the callback

        Returns:
            URL to redirect the browser to
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": self.scopes,
            "state": state,
            # ask for a refresh token every time
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    def _token_request(self, data: Dict[str, str]) -> Dict[str, Any]:
        payload = {**data, "client_id": self.client_id, "client_secret": self.client_secret}
        try:
            response = requests.post(self.token_url, data=payload, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Token endpoint unreachable: {e}") from e

        if not response.ok:
            logger.error(f"❌ Token request failed: {response.status_code} - {response.text[:200]}")
            raise AuthError(f"Token endpoint returned {response.status_code}")

        try:
            token = response.json()
        except ValueError as e:
            raise AuthError("Token endpoint returned invalid JSON") from e
        if not isinstance(token, dict) or "access_token" not in token:
            raise AuthError("Token response without access_token")

        expires_in = token.get("expires_in")
        try:
            token["expires_at"] = time.time() + float(expires_in) if expires_in else None
        except (TypeError, ValueError) as e:
            raise AuthError(f"Token response with bad expires_in: {expires_in!r}") from e
        return token

    def fetch_user(self, access_token: str) -> User:
        """
        Look up the signed-in identity

        Args:
            access_token: bearer token from the token endpoint

        Returns:
            User built from the OpenID userinfo claims (sub, email, name, picture)

        Raises:
            AuthError: request failed or the reply carries no subject
        """
        try:
            response = requests.get(
                self.userinfo_url,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            info = response.json()
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Userinfo request failed: {e}") from e
        except ValueError as e:
            raise AuthError("Userinfo endpoint returned invalid JSON") from e

        user_id = (info.get("sub") or info.get("id")) if isinstance(info, dict) else None
        if not user_id:
            raise AuthError("Userinfo response without a subject")
        return User(
            id=str(user_id),
            email=info.get("email", ""),
            name=info.get("name", ""),
            avatar_url=info.get("picture"),
        )

    def exchange_code_for_session(self, code: str, redirect_uri: str) -> Session:
        """
        Trade an authorization code for a session

        Args:
            code: `code` query parameter of the callback
            redirect_uri: the same redirect URI sent with the consent request

        Returns:
            Session with user, tokens and expiry

        Raises:
            CodeExchangeError: any provider failure along the way
        """
        try:
            token = self._token_request(
                {"grant_type": "authorization_code", "code": code, "redirect_uri": redirect_uri}
            )
            user = self.fetch_user(token["access_token"])
        except AuthError as e:
            raise CodeExchangeError(str(e)) from e

        logger.info(f"🔐 Session created for {user.email or user.id}")
        return Session(
            user=user,
            access_token=token["access_token"],
            refresh_token=token.get("refresh_token"),
            expires_at=token["expires_at"],
        )

    def refresh_session(self, session: Session) -> Session:
        """
        Renew an access token with the session's refresh token

        Args:
            session: current (usually expired) session

        Returns:
            New session for the same user

        Raises:
            AuthError: no refresh token, or the provider refused it
        """
        if not session.refresh_token:
            raise AuthError("Session has no refresh token")
        token = self._token_request(
            {"grant_type": "refresh_token", "refresh_token": session.refresh_token}
        )
        return Session(
            user=session.user,
            access_token=token["access_token"],
            # providers may omit the refresh token on renewal
            refresh_token=token.get("refresh_token") or session.refresh_token,
            expires_at=token["expires_at"],
        )


_oauth_client: Optional[OAuthClient] = None


def get_oauth_client() -> OAuthClient:
    """Return the shared OAuthClient"""
    global _oauth_client
    if _oauth_client is None:
        _oauth_client = OAuthClient()
    return _oauth_client
