"""Shared fixtures for the auth tests."""

from __future__ import annotations

import json
import socket

import pytest
import requests


def find_free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture()
def free_port() -> int:
    return find_free_port()


@pytest.fixture()
def http() -> requests.Session:
    # Local callback requests must never go through an environment proxy.
    session = requests.Session()
    session.trust_env = False
    yield session
    session.close()


@pytest.fixture()
def client_secret_file(tmp_path):
    path = tmp_path / "client_secret.json"
    path.write_text(
        json.dumps(
            {
                "installed": {
                    "client_id": "cid.apps.googleusercontent.com",
                    "client_secret": "external-secret",
                    "redirect_uris": ["http://localhost"],
                }
            }
        ),
        encoding="utf-8",
    )
    return path
