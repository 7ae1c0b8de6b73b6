"""Tests for the persisted token file."""

from __future__ import annotations

import json
import os
import stat
from datetime import datetime, timedelta, timezone

import pytest

from drive_uploader.auth.token_store import ZERO_EXPIRY, Credential, TokenStore, parse_rfc3339
from drive_uploader.errors import (
    TokenNotFoundError,
    TokenParseError,
    TokenPathIsDirectoryError,
)


NOW = datetime(2025, 11, 2, 4, 0, tzinfo=timezone.utc)


def _write(path, payload) -> None:
    path.write_text(json.dumps(payload), encoding="utf-8")


def test_legacy_token_loads_without_identity(tmp_path) -> None:
    token_file = tmp_path / "token.json"
    _write(
        token_file,
        {
            "access_token": "ya29.legacy",
            "token_type": "Bearer",
            "refresh_token": "1//refresh",
            "expiry": "2025-11-02T05:00:00.123456789+01:00",
        },
    )

    credential = TokenStore(token_file).load()

    assert credential.access_token == "ya29.legacy"
    assert credential.client_id == ""
    assert not credential.is_self_sufficient
    assert credential.expiry == datetime(2025, 11, 2, 4, 0, 0, 123456, tzinfo=timezone.utc)


def test_enhanced_token_is_self_sufficient(tmp_path) -> None:
    token_file = tmp_path / "token.json"
    _write(
        token_file,
        {
            "access_token": "ya29.enhanced",
            "token_type": "Bearer",
            "refresh_token": "1//refresh",
            "expiry": "2025-11-02T05:00:00Z",
            "client_id": "cid.apps.googleusercontent.com",
            "client_secret": "shh",
        },
    )

    credential = TokenStore(token_file).load()

    assert credential.is_self_sufficient
    assert credential.client_secret == "shh"


def test_save_then_load_preserves_fields(tmp_path) -> None:
    store = TokenStore(tmp_path / "nested" / "token.json")
    credential = Credential(
        access_token="a",
        token_type="Bearer",
        refresh_token="r",
        expiry=NOW + timedelta(hours=1),
        client_id="cid",
        client_secret="secret",
    )

    store.save(credential)

    assert store.load() == credential
    assert not (tmp_path / "nested" / "token.json.tmp").exists()


def test_save_restricts_permissions_to_owner(tmp_path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(Credential(access_token="a", refresh_token="r"))

    mode = stat.S_IMODE(os.stat(store.path).st_mode)
    assert mode == 0o600


def test_missing_identity_fields_are_omitted_on_save(tmp_path) -> None:
    store = TokenStore(tmp_path / "token.json")
    store.save(Credential(access_token="a", token_type="Bearer", refresh_token="r"))

    payload = json.loads(store.path.read_text(encoding="utf-8"))
    assert "client_id" not in payload
    assert "client_secret" not in payload
    assert payload["expiry"] == ZERO_EXPIRY


def test_zero_expiry_means_never_expires(tmp_path) -> None:
    token_file = tmp_path / "token.json"
    _write(token_file, {"access_token": "a", "expiry": ZERO_EXPIRY})

    credential = TokenStore(token_file).load()

    assert credential.expiry is None
    assert credential.is_valid(NOW, buffer_seconds=10)


def test_missing_file(tmp_path) -> None:
    with pytest.raises(TokenNotFoundError):
        TokenStore(tmp_path / "absent.json").load()


def test_directory_path(tmp_path) -> None:
    with pytest.raises(TokenPathIsDirectoryError):
        TokenStore(tmp_path).load()
    with pytest.raises(TokenPathIsDirectoryError):
        TokenStore(tmp_path).save(Credential(access_token="a"))


@pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"expiry": "yesterday"}'])
def test_unparseable_content(tmp_path, content: str) -> None:
    token_file = tmp_path / "token.json"
    token_file.write_text(content, encoding="utf-8")

    with pytest.raises(TokenParseError):
        TokenStore(token_file).load()


def test_validity_respects_buffer() -> None:
    credential = Credential(access_token="a", expiry=NOW + timedelta(seconds=5))

    assert credential.is_valid(NOW)
    assert not credential.is_valid(NOW, buffer_seconds=10)
    assert not Credential(expiry=NOW + timedelta(hours=1)).is_valid(NOW)


def test_authorization_header_normalizes_bearer() -> None:
    assert Credential(access_token="t", token_type="bearer").authorization_header() == "Bearer t"
    assert Credential(access_token="t").authorization_header() == "Bearer t"


def test_parse_rfc3339_variants() -> None:
    assert parse_rfc3339("2025-01-15T10:00:00Z") == datetime(2025, 1, 15, 10, tzinfo=timezone.utc)
    assert parse_rfc3339("2025-01-15T10:00:00.5Z").microsecond == 500000
    assert parse_rfc3339("2025-01-15T10:00:00") == datetime(2025, 1, 15, 10, tzinfo=timezone.utc)
    assert parse_rfc3339(ZERO_EXPIRY) is None
