"""OAuth2 authorization-code flow against Google's endpoints.

Interactive authorization first tries a local callback server with the
system browser. If no port can be bound, the callback reports an error, or
nothing arrives within five minutes, it falls back once to a manual flow where
the operator pastes the code into the terminal.
"""

from __future__ import annotations

import logging
import secrets
import webbrowser
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Optional, Type
from urllib.parse import urlencode

import requests
from rich.console import Console
from rich.markup import escape

from drive_uploader.errors import (
    AuthError,
    AuthorizationError,
    PortUnavailableError,
    RefreshFailedError,
)

from .callback_server import DEFAULT_PORT_RANGE, CallbackServer
from .client_identity import ClientIdentity
from .token_store import Credential

logger = logging.getLogger(__name__)

AUTHORIZATION_TIMEOUT_SECONDS = 300


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OAuth2Flow:
    """Authorization, code exchange and refresh for one client identity."""

    def __init__(
        self,
        identity: ClientIdentity,
        *,
        port_range: Iterable[int] = DEFAULT_PORT_RANGE,
        timeout: float = AUTHORIZATION_TIMEOUT_SECONDS,
        open_browser: Callable[[str], bool] = webbrowser.open,
        prompt: Optional[Callable[[str], str]] = None,
        console: Optional[Console] = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the flow.

        Args:
            identity: Client identity used for every request
            port_range: Ports tried, in order, for the local callback server
            timeout: Seconds to wait for the browser callback
            open_browser: Opens a URL, returns False when no browser is available
            prompt: Reads the authorization code in the manual flow
            console: Console for operator-facing output
            now: Clock used to compute absolute expiry times
        """
        self.identity = identity
        self.port_range = list(port_range)
        self.timeout = timeout
        self.console = console or Console(stderr=True)
        self._open_browser = open_browser
        self._prompt = prompt or (lambda message: self.console.input(f"{message}: "))
        self._now = now

    # ------------------------------------------------------------------
    # Endpoint operations
    # ------------------------------------------------------------------

    def authorization_url(self, redirect_uri: str, state: str) -> str:
        params = {
            "client_id": self.identity.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.identity.scopes),
            "state": state,
            "access_type": "offline",
        }
        separator = "&" if "?" in self.identity.auth_uri else "?"
        return f"{self.identity.auth_uri}{separator}{urlencode(params)}"

    def exchange_code(self, code: str, redirect_uri: str) -> Credential:
        """Exchange an authorization code for a credential.

        Raises:
            AuthorizationError: If the token endpoint rejects the code
        """
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": self.identity.client_id,
            "redirect_uri": redirect_uri,
        }
        if self.identity.client_secret:
            data["client_secret"] = self.identity.client_secret
        payload = self._post(data, AuthorizationError)
        return self._credential_from_response(payload, AuthorizationError)

    def refresh(self, credential: Credential) -> Credential:
        """Obtain a fresh access token for ``credential``.

        The provider usually omits the refresh token from the response, in
        which case the existing one is kept.

        Raises:
            RefreshFailedError: If there is no refresh token or the endpoint rejects it
        """
        if not credential.refresh_token:
            raise RefreshFailedError("credential has no refresh token")
        data = {
            "grant_type": "refresh_token",
            "refresh_token": credential.refresh_token,
            "client_id": self.identity.client_id,
        }
        if self.identity.client_secret:
            data["client_secret"] = self.identity.client_secret
        payload = self._post(data, RefreshFailedError)
        return self._credential_from_response(payload, RefreshFailedError, previous=credential)

    # ------------------------------------------------------------------
    # Interactive flows
    # ------------------------------------------------------------------

    def run_interactive(self) -> Credential:
        """Authorize through the browser, falling back to manual code entry.

        Raises:
            AuthorizationError: If the manual fallback fails as well
        """
        state = secrets.token_urlsafe(16)
        server = CallbackServer(self.port_range, expected_state=state)
        try:
            server.start()
        except PortUnavailableError as exc:
            self.console.print(f"[yellow]Warning: Could not find available port: {escape(str(exc))}[/yellow]")
            self.console.print("Falling back to manual authorization flow...")
            return self.run_manual()

        code: Optional[str] = None
        with server:
            redirect_uri = server.redirect_uri
            auth_url = self.authorization_url(redirect_uri, state)
            self.console.print("Opening browser for authorization...")
            self.console.print(f"If the browser doesn't open, visit this URL:\n{auth_url}\n", soft_wrap=True)
            self._launch_browser(auth_url)
            try:
                code = server.wait_for_code(self.timeout)
            except AuthorizationError as exc:
                logger.warning("Browser authorization failed: %s", exc)
                self.console.print(f"[yellow]{escape(str(exc))}[/yellow]. Falling back to manual authorization flow...")

        if code is None:
            return self.run_manual()

        self.console.print("Authorization code received!")
        return self.exchange_code(code, redirect_uri)

    def run_manual(self) -> Credential:
        """Print the authorization URL and read the code typed by the operator.

        Raises:
            AuthorizationError: If no code can be read or the exchange fails
        """
        redirect_uri = self.identity.default_redirect_uri
        auth_url = self.authorization_url(redirect_uri, secrets.token_urlsafe(16))
        self.console.print(
            "Go to the following link in your browser then type the authorization code:",
        )
        self.console.print(auth_url, soft_wrap=True)
        try:
            code = self._prompt("Authorization code").strip()
        except EOFError as exc:
            raise AuthorizationError("Unable to read authorization code: input closed") from exc
        if not code:
            raise AuthorizationError("No authorization code entered")
        return self.exchange_code(code, redirect_uri)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _launch_browser(self, url: str) -> None:
        try:
            opened = self._open_browser(url)
        except webbrowser.Error as exc:
            opened = False
            logger.debug("Browser launch raised: %s", exc)
        if not opened:
            self.console.print("[yellow]Warning: Could not open browser automatically.[/yellow]")
            self.console.print("Please open the URL manually in your browser.")

    def _post(self, data: Dict[str, Any], error_cls: Type[AuthError]) -> Dict[str, Any]:
        try:
            response = requests.post(self.identity.token_uri, data=data, timeout=30)
        except requests.RequestException as exc:
            logger.error("Token request failed: %s", exc)
            raise error_cls(f"Token request to {self.identity.token_uri} failed: {exc}") from exc
        if response.status_code != 200:
            raise error_cls(
                f"Token endpoint returned {response.status_code}: {response.text[:200]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise error_cls(f"Token endpoint returned invalid JSON: {exc}") from exc
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise error_cls("Token endpoint response has no access_token")
        return payload

    def _credential_from_response(
        self,
        payload: Dict[str, Any],
        error_cls: Type[AuthError],
        previous: Optional[Credential] = None,
    ) -> Credential:
        expiry = None
        expires_in = payload.get("expires_in")
        if expires_in:
            try:
                seconds = int(expires_in)
            except (TypeError, ValueError) as exc:
                raise error_cls(f"Token endpoint returned invalid expires_in: {expires_in!r}") from exc
            expiry = self._now() + timedelta(seconds=seconds)
        refresh_token = payload.get("refresh_token") or (previous.refresh_token if previous else "")
        return Credential(
            access_token=payload.get("access_token", ""),
            token_type=payload.get("token_type", "Bearer"),
            refresh_token=refresh_token,
            expiry=expiry,
            client_id=previous.client_id if previous else "",
            client_secret=previous.client_secret if previous else "",
        )


__all__ = ["AUTHORIZATION_TIMEOUT_SECONDS", "OAuth2Flow"]
