"""OAuth2 token lifecycle for Google Drive access."""

from .callback_server import CALLBACK_PATH, DEFAULT_PORT_RANGE, CallbackServer
from .client_identity import DEFAULT_SCOPES, DRIVE_SCOPE, ClientIdentity
from .oauth_flow import AUTHORIZATION_TIMEOUT_SECONDS, OAuth2Flow
from .token_manager import RefreshingTokenAuth, TokenManager, TokenState
from .token_store import Credential, TokenStore

__all__ = [
    "AUTHORIZATION_TIMEOUT_SECONDS",
    "CALLBACK_PATH",
    "CallbackServer",
    "ClientIdentity",
    "Credential",
    "DEFAULT_PORT_RANGE",
    "DEFAULT_SCOPES",
    "DRIVE_SCOPE",
    "OAuth2Flow",
    "RefreshingTokenAuth",
    "TokenManager",
    "TokenState",
    "TokenStore",
]
