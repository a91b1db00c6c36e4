import json
from types import SimpleNamespace
from unittest.mock import patch
from urllib.parse import urlsplit

import httpx
import pytest

from config import TestingConfig
from serenite import create_app

API = "http://api.test"


class FakeApi:
    """Faux backend REST : (méthode, chemin) -> httpx.Response ou callable."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, method, path, status=200, json=None, handler=None, **kwargs):
        if handler is not None:
            self.routes[(method, path)] = handler
        else:
            self.routes[(method, path)] = httpx.Response(status, json=json, **kwargs)
        return self

    def __call__(self, method, url, **kwargs):
        path = urlsplit(url).path
        self.calls.append(SimpleNamespace(method=method, url=url, path=path, kwargs=kwargs))
        route = self.routes.get((method, path))
        if route is None:
            return httpx.Response(404, json={"message": f"no route {method} {path}"})
        if callable(route):
            return route(method, url, **kwargs)
        return route

    def calls_to(self, method, path):
        return [c for c in self.calls if c.method == method and c.path == path]


@pytest.fixture()
def fake_api():
    api = FakeApi()
    with patch("httpx.request", side_effect=api):
        yield api


@pytest.fixture()
def app():
    return create_app(TestingConfig)


@pytest.fixture()
def client(app):
    return app.test_client()


def login_as(client, role="ADHERENT", user_id="u-1", email="jane@example.com", token="tok-123", full_name="Jane Doe"):
    """Ouvre une session directement dans le cookie (comme après un login réussi)."""
    user = {"id": user_id, "email": email, "fullName": full_name, "role": role}
    with client.session_transaction() as s:
        s["token"] = token
        s["auth"] = json.dumps({"user": user, "token": token})
        s["_user_id"] = user_id
        s["_fresh"] = True
    return user


@pytest.fixture()
def as_admin(client):
    return login_as(client, role="SUPER_ADMIN", user_id="admin-1", email="admin@example.com", full_name="Alice Admin")


def admin_user(user_id, **fields):
    payload = {"id": user_id, "email": f"{user_id}@example.com", "role": "ADHERENT", "isValidated": False}
    payload.update(fields)
    return payload
