"""Low-level HTTP client for Keycloak Admin API.

Handles credential freshness, JSON encoding, and error classification.
"""
from __future__ import annotations
import logging
from typing import Any, Iterable, Optional, Sequence

import requests

from .credentials import CredentialManager
from .exceptions import KeycloakAPIError, NotFound, error_for_status

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 5


class AdminApiClient:
    """HTTP client for the Admin API of a single realm.

    Features:
    - Fresh bearer credential on every call (refreshed within the safety margin)
    - 204 / empty bodies returned as None
    - Typed errors: Forbidden, NotFound, Conflict, KeycloakAPIError
    - No retries: retrying is the caller's decision

    Usage:
        client = AdminApiClient(CredentialManager(session))
        users = client.get_users(first=0, max=10)
    """

    def __init__(
        self,
        credentials: CredentialManager,
        base_url: Optional[str] = None,
        realm: Optional[str] = None,
        timeout: int = REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize Admin API client.

        Args:
            credentials: Credential manager attached to every request
            base_url: Keycloak base URL (defaults to the OIDC session's auth server URL)
            realm: Managed realm (defaults to the OIDC session's realm)
            timeout: Per-request timeout in seconds
            session: Optional requests session (connection pooling, tests)
        """
        self.credentials = credentials
        self.realm = realm or credentials.realm
        server_url = (base_url or credentials.auth_server_url).rstrip("/")
        self.base_url = f"{server_url}/admin/realms/{self.realm}"
        self.timeout = timeout
        self._http = session or requests.Session()

    def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        params: Any = None,
    ) -> Any:
        """Execute an authenticated Admin API call.

        Args:
            path: Endpoint path relative to the realm (e.g., "/users")
            method: HTTP method
            body: JSON-serializable payload (omitted when None)
            params: Query parameters (dict or list of pairs for repeated keys)

        Returns:
            Parsed JSON, or None for 204 / empty / non-JSON bodies

        Raises:
            AuthExpired: If the credential cannot be refreshed
            Forbidden, NotFound, Conflict, KeycloakAPIError: On HTTP error
        """
        credential = self.credentials.ensure_fresh()
        url = f"{self.base_url}{path}"
        headers = {
            "Authorization": f"Bearer {credential.token}",
            "Content-Type": "application/json",
        }

        logger.debug("%s %s", method, path)
        try:
            resp = self._http.request(
                method,
                url,
                params=params,
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise KeycloakAPIError(0, str(exc), url) from exc

        self._handle_error(resp, url)

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    def _handle_error(self, resp: requests.Response, url: str) -> None:
        """Centralized error handling for HTTP responses.

        Raises:
            KeycloakAPIError subclass matching the status code
        """
        if not 200 <= resp.status_code < 300:
            raise error_for_status(resp.status_code, resp.text, url)

    # ─────────────────────────────────────────────────────────────────────────
    # Users
    # ─────────────────────────────────────────────────────────────────────────

    def get_users(self, first: int = 0, max: int = 10) -> list[dict]:
        """List user representations in server order."""
        return self.request("/users", params={"first": first, "max": max}) or []

    def get_users_count(self) -> int:
        """Total number of users in the realm (0 when the body is unusable)."""
        return _parse_count(self.request("/users/count"))

    def find_user_by_username(self, username: str) -> Optional[dict]:
        """Return the user whose username matches (Keycloak stores usernames lowercased)."""
        users = self.request("/users", params={"username": username, "exact": "true"}) or []
        for user in users:
            if (user.get("username") or "").lower() == username.lower():
                return user
        return None

    def create_user(self, username: str, email: Optional[str] = None, enabled: bool = True, email_verified: bool = True) -> None:
        """Create a user. The server does not echo the new id back."""
        payload = {
            "username": username,
            "email": email,
            "enabled": enabled,
            "emailVerified": email_verified,
        }
        self.request("/users", method="POST", body=payload)

    def reset_password(self, user_id: str, value: str, temporary: bool = False) -> None:
        self.request(
            f"/users/{user_id}/reset-password",
            method="PUT",
            body={"type": "password", "value": value, "temporary": temporary},
        )

    # ─────────────────────────────────────────────────────────────────────────
    # Roles
    # ─────────────────────────────────────────────────────────────────────────

    def get_realm_roles(self) -> list[dict]:
        return self.request("/roles") or []

    def get_role_by_name(self, name: str) -> Optional[dict]:
        """Role representation by name, or None if the role does not exist."""
        try:
            return self.request(f"/roles/{name}")
        except NotFound:
            return None

    def get_user_realm_roles(self, user_id: str) -> list[dict]:
        """Realm roles mapped to a user."""
        return self.request(f"/users/{user_id}/role-mappings/realm") or []

    def add_realm_role_mappings(self, user_id: str, roles: Sequence[dict]) -> None:
        """Grant roles; each entry must carry both ``id`` and ``name``."""
        self.request(f"/users/{user_id}/role-mappings/realm", method="POST", body=list(roles))

    def remove_realm_role_mappings(self, user_id: str, roles: Sequence[dict]) -> None:
        """Revoke roles; each entry must carry both ``id`` and ``name``."""
        self.request(f"/users/{user_id}/role-mappings/realm", method="DELETE", body=list(roles))

    # ─────────────────────────────────────────────────────────────────────────
    # Events
    # ─────────────────────────────────────────────────────────────────────────

    def get_events(self, first: int = 0, max: int = 10, types: Iterable[str] = ()) -> list[dict]:
        """Realm events, newest first, filtered by repeated ``type`` params."""
        params: list[tuple[str, Any]] = [("first", first), ("max", max)]
        params.extend(("type", event_type) for event_type in types)
        return self.request("/events", params=params) or []


def _parse_count(raw: Any) -> int:
    """Parse /users/count, which may arrive as 42, "42" or '"42"'."""
    if isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, float):
        return max(int(raw), 0)
    if isinstance(raw, str):
        try:
            return max(int(raw.strip().strip('"')), 0)
        except ValueError:
            return 0
    return 0
