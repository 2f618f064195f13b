"""
Bearer token session against the sign-in server.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests

from ..config import HTTP_TIMEOUT, TOKEN_REFRESH_THRESHOLD
from ..errors import AuthError, TokenRefreshFailure
from .claims import expiry_from_token

logger = logging.getLogger(__name__)


@dataclass
class SessionTokens:
    """Token set issued by the sign-in server."""
    access_token: str
    id_token: str
    refresh_token: Optional[str] = None
    expiry_epoch: Optional[float] = None


class AuthSession:
    """
    Owns the current token set and keeps it fresh.

    The session is replaced wholesale on every successful sign-in or refresh,
    so callers that derived anything from the previous ``id_token`` must
    compare it against :attr:`id_token` and rebuild.
    """

    def __init__(self, auth_url: str, username: str, password: str,
                 refresh_threshold: float = TOKEN_REFRESH_THRESHOLD,
                 clock: Callable[[], float] = time.time):
        self.auth_url = auth_url.rstrip("/")
        self.username = username
        self.password = password
        self.refresh_threshold = refresh_threshold
        self.clock = clock
        self.tokens: Optional[SessionTokens] = None

    @property
    def id_token(self) -> Optional[str]:
        return self.tokens.id_token if self.tokens else None

    @property
    def can_refresh(self) -> bool:
        """True when a refresh token is held; without one the session is never refreshed."""
        return self.tokens is not None and bool(self.tokens.refresh_token)

    def authenticate(self, username: Optional[str] = None, password: Optional[str] = None) -> SessionTokens:
        """
        Run the full sign-in exchange and store a brand-new token set.

        Args:
            username: Overrides the username given at construction
            password: Overrides the password given at construction

        Returns:
            The new token set

        Raises:
            AuthError: On invalid credentials or transport failure
        """
        if username is not None:
            self.username = username
        if password is not None:
            self.password = password

        logger.info("Authenticating with auth server...")
        try:
            response = requests.post(
                f"{self.auth_url}/auth/sign_in",
                json={"username": self.username, "password": self.password},
                timeout=HTTP_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise AuthError(f"Authentication request failed: {e}") from e

        if not response.ok:
            raise AuthError(f"Authentication failed: {response.text}")

        self.tokens = self._build_tokens(self._json_body(response, AuthError), previous=None)
        logger.info("Successfully authenticated")
        return self.tokens

    def needs_refresh(self, now: Optional[float] = None) -> bool:
        """True when the session expires within the refresh threshold."""
        if self.tokens is None or self.tokens.expiry_epoch is None:
            return False
        if now is None:
            now = self.clock()
        return self.tokens.expiry_epoch - now < self.refresh_threshold

    def refresh(self) -> Optional[SessionTokens]:
        """
        Exchange the refresh token for a new token set.

        Without a refresh token this does nothing. If the refresh call fails
        the session falls back to a full sign-in with the stored username
        and password.

        Raises:
            AuthError: If the fallback sign-in also fails
        """
        if self.tokens is None or not self.tokens.refresh_token:
            return self.tokens

        logger.info("Refreshing tokens...")
        try:
            body = self._request_refresh()
        except TokenRefreshFailure as e:
            logger.warning(f"Token refresh failed, signing in again: {e}")
            return self.authenticate()

        self.tokens = self._build_tokens(body, previous=self.tokens)
        logger.info("Successfully refreshed tokens")
        return self.tokens

    def _request_refresh(self) -> Dict[str, Any]:
        try:
            response = requests.post(
                f"{self.auth_url}/auth/refresh_token",
                json={"refresh_token": self.tokens.refresh_token, "username": self.username},
                timeout=HTTP_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            raise TokenRefreshFailure(str(e)) from e

        if not response.ok:
            raise TokenRefreshFailure(f"{response.status_code}: {response.text}")
        return self._json_body(response, TokenRefreshFailure)

    def _json_body(self, response, error_cls) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError as e:
            raise error_cls(f"Auth server returned invalid JSON: {e}") from e
        if not isinstance(body, dict) or not body.get("id_token"):
            raise error_cls("Auth server response has no id_token")
        return body

    def _build_tokens(self, body: Dict[str, Any], previous: Optional[SessionTokens]) -> SessionTokens:
        refresh_token = body.get("refresh_token")
        if not refresh_token and previous is not None:
            # Refresh responses do not reissue the refresh token
            refresh_token = previous.refresh_token

        return SessionTokens(
            access_token=body.get("access_token", ""),
            id_token=body["id_token"],
            refresh_token=refresh_token,
            expiry_epoch=self._expiry_from_body(body),
        )

    def _expiry_from_body(self, body: Dict[str, Any]) -> Optional[float]:
        expires_in = body.get("expires_in")
        if isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
            return self.clock() + expires_in
        exp = body.get("exp")
        if isinstance(exp, (int, float)) and not isinstance(exp, bool):
            return float(exp)
        return expiry_from_token(body.get("id_token"))
