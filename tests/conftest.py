"""Pytest shared fixtures: stub OIDC session and stub Admin API transport."""
import json
import pathlib
import sys
import threading
import time
from typing import Any, Optional

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from realm_admin.core.keycloak import AdminApiClient, CredentialManager

BASE_URL = "http://kc"
REALM = "demo"
ADMIN_PREFIX = f"{BASE_URL}/admin/realms/{REALM}"


class StubResponse:
    """Just enough of requests.Response for the Admin API client."""

    def __init__(self, payload: Any = None, status_code: int = 200, text: Optional[str] = None):
        self.status_code = status_code
        if text is None:
            text = "" if payload is None else json.dumps(payload)
        self.text = text
        self.content = text.encode("utf-8")

    def json(self):
        return json.loads(self.text)


class StubOIDCSession:
    """OIDC session whose refresh hands out a token valid for ``lifetime`` seconds."""

    def __init__(self, token: Optional[str] = "token-0", expires_in: float = 300, lifetime: float = 300):
        self.realm = REALM
        self.auth_server_url = BASE_URL
        self.token = token
        self.expires_at = time.time() + expires_in if token else None
        self.lifetime = lifetime
        self.refresh_calls = 0
        self.fail_with: Optional[Exception] = None
        self.delay = 0.0
        self._lock = threading.Lock()

    def update_token(self, min_validity: int) -> bool:
        with self._lock:
            self.refresh_calls += 1
            count = self.refresh_calls
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        self.token = f"token-{count}"
        self.expires_at = time.time() + self.lifetime
        return True


class StubTransport:
    """Records Admin API calls and answers from a route table.

    Routes map (METHOD, path) to a StubResponse, an exception instance, or a
    callable taking the recorded call and returning either of those.
    """

    def __init__(self):
        self.routes: dict[tuple[str, str], Any] = {}
        self.calls: list[dict] = []
        self._lock = threading.Lock()

    def add(self, method: str, path: str, answer: Any) -> None:
        self.routes[(method.upper(), path)] = answer

    def request(self, method, url, params=None, json=None, headers=None, timeout=None):
        assert url.startswith(ADMIN_PREFIX), url
        path = url[len(ADMIN_PREFIX):]
        call = {"method": method.upper(), "path": path, "params": params, "json": json, "headers": headers}
        with self._lock:
            self.calls.append(call)
        answer = self.routes.get((call["method"], path))
        if answer is None:
            return StubResponse({"error": "unknown route"}, status_code=404)
        if callable(answer) and not isinstance(answer, StubResponse):
            answer = answer(call)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def calls_to(self, method: str, path: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method.upper() and c["path"] == path]


@pytest.fixture
def oidc_session():
    return StubOIDCSession()


@pytest.fixture
def transport():
    return StubTransport()


@pytest.fixture
def client(oidc_session, transport):
    """Admin API client wired to the stub session and transport."""
    return AdminApiClient(CredentialManager(oidc_session), session=transport)


@pytest.fixture
def user_reps():
    return [
        {"id": "u1", "username": "alice", "email": "alice@example.com", "enabled": True},
        {"id": "u2", "username": "bob", "enabled": False},
        {"id": "u3", "username": "carol", "email": "carol@example.com", "enabled": True},
    ]


@pytest.fixture
def role_reps():
    return [
        {"id": "r1", "name": "doctor"},
        {"id": "r2", "name": "admin"},
        {"id": "r3", "name": "doctoradmin"},
        {"id": "r4", "name": "offline_access"},
        {"id": "r5", "name": f"default-roles-{REALM}"},
    ]


@pytest.fixture
def make_session():
    """Factory for stub OIDC sessions with custom lifetimes."""
    return StubOIDCSession
