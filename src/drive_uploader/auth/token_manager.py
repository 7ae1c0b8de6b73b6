"""Token lifecycle: load, validate, refresh, re-authorize and persist.

``TokenManager.authenticate`` drives a small state machine:

    NO_TOKEN --------------------------------------> AUTHORIZING -> READY
    HAS_TOKEN_VALID_SELF_SUFFICIENT ---------------> READY
    HAS_TOKEN_VALID_DEPENDENT ---------------------> READY
    HAS_TOKEN_INVALID -> refresh -> READY
                              \\-> AUTHORIZING -> READY | FAILED

After ``READY`` every request made through ``session()`` checks the token
and refreshes it first when it is expired or about to expire.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import requests
from requests.auth import AuthBase

from drive_uploader.errors import (
    AuthorizationError,
    ClientSecretError,
    MissingCredentialsError,
    RefreshFailedError,
    TokenPathIsDirectoryError,
    TokenStoreError,
)

from .client_identity import DEFAULT_SCOPES, ClientIdentity
from .oauth_flow import OAuth2Flow
from .token_store import Credential, TokenStore

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_BUFFER_SECONDS = 10

FlowFactory = Callable[[ClientIdentity], OAuth2Flow]


class TokenState(str, Enum):
    """States of the token lifecycle."""

    NO_TOKEN = "no_token"
    HAS_TOKEN_INVALID = "has_token_invalid"
    HAS_TOKEN_VALID_SELF_SUFFICIENT = "has_token_valid_self_sufficient"
    HAS_TOKEN_VALID_DEPENDENT = "has_token_valid_dependent"
    AUTHORIZING = "authorizing"
    READY = "ready"
    FAILED = "failed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenManager:
    """Produces a usable credential and an auto-refreshing HTTP session."""

    def __init__(
        self,
        token_path: Path,
        *,
        client_secret_path: Optional[Path] = None,
        token_gen: bool = False,
        scopes: Optional[Sequence[str]] = None,
        flow_factory: Optional[FlowFactory] = None,
        refresh_buffer_seconds: int = DEFAULT_REFRESH_BUFFER_SECONDS,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = TokenStore(token_path)
        self.client_secret_path = Path(client_secret_path).expanduser() if client_secret_path else None
        self.token_gen = token_gen
        self.scopes = list(scopes or DEFAULT_SCOPES)
        self.refresh_buffer_seconds = refresh_buffer_seconds
        self._flow_factory = flow_factory or (lambda identity: OAuth2Flow(identity))
        self._now = now

        self.credential: Optional[Credential] = None
        self.identity: Optional[ClientIdentity] = None
        self.state = TokenState.NO_TOKEN
        self.transitions: List[TokenState] = [TokenState.NO_TOKEN]

    @property
    def token_path(self) -> Path:
        return self.store.path

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def authenticate(self) -> Credential:
        """Bring the manager to ``READY`` and return the credential.

        Raises:
            MissingCredentialsError: No usable token and no client secret configured
            ClientSecretError: The configured client secret cannot be read
            AuthorizationError: Interactive authorization and its fallback both failed
        """
        try:
            credential = self.store.load()
        except TokenPathIsDirectoryError:
            self._transition(TokenState.FAILED)
            raise
        except TokenStoreError as exc:
            logger.info("No usable token at %s: %s", self.token_path, exc)
            identity = self._load_external_identity(required=True, cause=exc)
            return self._authorize(identity)

        self.credential = credential
        self.identity = self._identity_for(credential)

        if credential.is_valid(self._now(), self.refresh_buffer_seconds):
            if credential.is_self_sufficient:
                self._transition(TokenState.HAS_TOKEN_VALID_SELF_SUFFICIENT)
            else:
                self._transition(TokenState.HAS_TOKEN_VALID_DEPENDENT)
                if self.identity is None:
                    logger.warning(
                        "Token at %s has no embedded client credentials and no client secret "
                        "is available; it cannot be refreshed once it expires",
                        self.token_path,
                    )
            self._transition(TokenState.READY)
            return credential

        self._transition(TokenState.HAS_TOKEN_INVALID)
        self._refresh_or_reauthorize()
        return self.credential

    def current_token(self) -> Credential:
        """Return a credential that is valid right now, refreshing if needed."""
        if self.credential is None or self.state != TokenState.READY:
            self.authenticate()
        if not self.credential.is_valid(self._now(), self.refresh_buffer_seconds):
            self._transition(TokenState.HAS_TOKEN_INVALID)
            self._refresh_or_reauthorize()
        return self.credential

    def session(self) -> requests.Session:
        """HTTP session that authorizes every request with a fresh token."""
        session = requests.Session()
        session.auth = RefreshingTokenAuth(self)
        return session

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transition(self, state: TokenState) -> None:
        logger.debug("Token state: %s -> %s", self.state.value, state.value)
        self.state = state
        self.transitions.append(state)

    def _flow(self, identity: ClientIdentity) -> OAuth2Flow:
        return self._flow_factory(identity)

    def _identity_for(self, credential: Credential) -> Optional[ClientIdentity]:
        # An explicitly supplied client secret wins when (re)generating a token.
        if self.token_gen and self.client_secret_path is not None:
            return self._load_external_identity(required=True)
        if credential.is_self_sufficient:
            return ClientIdentity.from_credential(credential, self.scopes)
        return self._load_external_identity(required=False)

    def _load_external_identity(
        self, *, required: bool, cause: Optional[Exception] = None
    ) -> Optional[ClientIdentity]:
        if self.client_secret_path is None:
            if required:
                self._transition(TokenState.FAILED)
                raise MissingCredentialsError(
                    "no valid token found and --client-secret not provided",
                    details={"token_path": str(self.token_path)},
                ) from cause
            return None
        try:
            return ClientIdentity.from_file(self.client_secret_path, self.scopes)
        except ClientSecretError as exc:
            if required:
                self._transition(TokenState.FAILED)
                raise
            logger.warning("Ignoring unreadable client secret: %s", exc)
            return None

    def _authorize(self, identity: ClientIdentity) -> Credential:
        self._transition(TokenState.AUTHORIZING)
        try:
            credential = self._flow(identity).run_interactive()
        except AuthorizationError:
            self._transition(TokenState.FAILED)
            raise
        credential = credential.with_identity(identity.client_id, identity.client_secret)
        try:
            self.store.save(credential)
        except TokenStoreError:
            self._transition(TokenState.FAILED)
            raise
        self.credential = credential
        self.identity = identity
        self._transition(TokenState.READY)
        return credential

    def _refresh_or_reauthorize(self) -> None:
        identity = self.identity
        if identity is None:
            identity = self._load_external_identity(required=True)

        try:
            refreshed = self._flow(identity).refresh(self.credential)
        except RefreshFailedError as exc:
            logger.warning("Failed to refresh token: %s. Requesting new authorization...", exc)
            self._authorize(identity)
            return

        refreshed = refreshed.with_identity(identity.client_id, identity.client_secret)
        self.credential = refreshed
        self.identity = identity
        self._persist_if_changed(refreshed)
        self._transition(TokenState.READY)

    def _persist_if_changed(self, credential: Credential) -> None:
        try:
            on_disk: Optional[Credential] = self.store.load()
        except TokenStoreError:
            on_disk = None
        if (
            on_disk is not None
            and on_disk.access_token == credential.access_token
            and on_disk.expiry == credential.expiry
        ):
            return
        logger.info("Token refreshed, saving to %s", self.token_path)
        try:
            self.store.save(credential)
        except TokenStoreError as exc:
            logger.warning("Refreshed token could not be persisted: %s", exc)


class RefreshingTokenAuth(AuthBase):
    """``requests`` auth hook that asks the manager for a valid token per request."""

    def __init__(self, manager: TokenManager) -> None:
        self.manager = manager

    def __call__(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        credential = self.manager.current_token()
        request.headers["Authorization"] = credential.authorization_header()
        return request


__all__ = ["RefreshingTokenAuth", "TokenManager", "TokenState"]
