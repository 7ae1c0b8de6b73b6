"""Tests for client secret loading."""

from __future__ import annotations

import json

import pytest

from drive_uploader.auth.client_identity import (
    DEFAULT_SCOPES,
    GOOGLE_TOKEN_URI,
    ClientIdentity,
)
from drive_uploader.auth.token_store import Credential
from drive_uploader.errors import ClientSecretError


def test_installed_application(tmp_path) -> None:
    path = tmp_path / "client_secret.json"
    path.write_text(
        json.dumps(
            {
                "installed": {
                    "client_id": "cid",
                    "client_secret": "secret",
                    "auth_uri": "https://accounts.example.com/auth",
                    "token_uri": "https://oauth2.example.com/token",
                    "redirect_uris": ["urn:ietf:wg:oauth:2.0:oob", "http://localhost"],
                }
            }
        ),
        encoding="utf-8",
    )

    identity = ClientIdentity.from_file(path)

    assert identity.client_id == "cid"
    assert identity.token_uri == "https://oauth2.example.com/token"
    assert identity.default_redirect_uri == "urn:ietf:wg:oauth:2.0:oob"
    assert identity.scopes == DEFAULT_SCOPES


def test_web_application_with_scopes(tmp_path) -> None:
    path = tmp_path / "client_secret.json"
    path.write_text(json.dumps({"web": {"client_id": "cid", "client_secret": "s"}}), encoding="utf-8")

    identity = ClientIdentity.from_file(path, scopes=["scope-a"])

    assert identity.scopes == ["scope-a"]
    assert identity.default_redirect_uri == "http://localhost"


@pytest.mark.parametrize(
    "content",
    ["{", json.dumps({"other": {}}), json.dumps({"installed": {"client_secret": "s"}})],
)
def test_malformed_client_secret(tmp_path, content: str) -> None:
    path = tmp_path / "client_secret.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ClientSecretError) as excinfo:
        ClientIdentity.from_file(path)
    assert excinfo.value.path == str(path)


def test_missing_client_secret_file(tmp_path) -> None:
    with pytest.raises(ClientSecretError):
        ClientIdentity.from_file(tmp_path / "absent.json")


def test_identity_from_embedded_credential() -> None:
    identity = ClientIdentity.from_credential(Credential(client_id="cid", client_secret="secret"))

    assert identity.client_secret == "secret"
    assert identity.token_uri == GOOGLE_TOKEN_URI
