"""Bearer credential lifecycle for the Keycloak Admin API.

The manager wraps an OIDC session object (the thing that actually talks to the
token endpoint) and guarantees that callers never get a token that expires
within the safety margin. Refreshes are coalesced: while one refresh is in
flight every other caller waits on the same future instead of starting its own.
"""
from __future__ import annotations
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import jwt
from authlib.integrations.requests_client import OAuth2Session

from .exceptions import AuthExpired

logger = logging.getLogger(__name__)

DEFAULT_MIN_VALIDITY = 30
TOKEN_REQUEST_TIMEOUT = 5


@dataclass(frozen=True)
class Credential:
    """Opaque bearer token plus its absolute expiry (epoch seconds)."""
    token: str
    expires_at: float

    def remaining(self, now: Optional[float] = None) -> float:
        return self.expires_at - (time.time() if now is None else now)

    def __repr__(self) -> str:
        return f"Credential(token='***', expires_at={self.expires_at})"


class OIDCSession(Protocol):
    """Minimal surface of an OIDC session (keycloak-js style adapter)."""
    token: Optional[str]
    expires_at: Optional[float]
    realm: str
    auth_server_url: str

    def update_token(self, min_validity: int) -> bool:
        """Refresh the token if it expires within ``min_validity`` seconds."""
        ...


class CredentialManager:
    """Hold the current credential and refresh it before it gets too old.

    Usage:
        manager = CredentialManager(ServiceAccountSession(...))
        credential = manager.ensure_fresh()
        headers = {"Authorization": f"Bearer {credential.token}"}
    """

    def __init__(
        self,
        session: OIDCSession,
        min_validity: int = DEFAULT_MIN_VALIDITY,
        clock: Callable[[], float] = time.time,
    ):
        self._session = session
        self.min_validity = min_validity
        self._clock = clock
        self._lock = threading.Lock()
        self._pending: Optional[Future] = None
        self._credential: Optional[Credential] = None
        if session.token and session.expires_at is not None:
            self._credential = Credential(session.token, float(session.expires_at))

    @property
    def realm(self) -> str:
        return self._session.realm

    @property
    def auth_server_url(self) -> str:
        return self._session.auth_server_url

    def _is_fresh(self, credential: Optional[Credential], margin: int) -> bool:
        return credential is not None and self._clock() + margin < credential.expires_at

    def ensure_fresh(self, min_validity: Optional[int] = None) -> Credential:
        """Return a credential valid for at least ``min_validity`` more seconds.

        Args:
            min_validity: Safety margin in seconds (defaults to the manager's margin)

        Returns:
            Fresh credential

        Raises:
            AuthExpired: If the refresh failed or still left an expiring token
        """
        margin = self.min_validity if min_validity is None else min_validity

        while True:
            with self._lock:
                if self._is_fresh(self._credential, margin):
                    return self._credential
                pending = self._pending
                owner = pending is None or pending.done()
                if owner:
                    pending = self._pending = Future()

            if owner:
                try:
                    pending.set_result(self._refresh(margin))
                except Exception as exc:
                    pending.set_exception(exc)
                finally:
                    with self._lock:
                        if self._pending is pending:
                            self._pending = None
                return pending.result()

            logger.debug("Waiting on in-flight token refresh")
            credential = pending.result()
            if self._is_fresh(credential, margin):
                return credential
            logger.debug("Shared refresh does not cover %ss, refreshing again", margin)

    def _refresh(self, margin: int) -> Credential:
        logger.debug("Refreshing bearer token (margin=%ss)", margin)
        try:
            self._session.update_token(margin)
        except AuthExpired:
            raise
        except Exception as exc:
            logger.warning("Token refresh failed: %s", exc)
            raise AuthExpired(f"Token refresh failed: {exc}") from exc

        token = self._session.token
        expires_at = self._session.expires_at
        if not token or expires_at is None:
            raise AuthExpired("No active token after refresh")

        credential = Credential(token, float(expires_at))
        if not self._is_fresh(credential, margin):
            raise AuthExpired(f"Token expires in {credential.remaining(self._clock()):.0f}s, below the {margin}s margin")
        with self._lock:
            self._credential = credential
        return credential


# ─────────────────────────────────────────────────────────────────────────────
# Session adapters
# ─────────────────────────────────────────────────────────────────────────────

def token_expiry(token: str) -> Optional[float]:
    """Read the ``exp`` claim of a JWT without verifying its signature.

    The token is only inspected for its lifetime; Keycloak validates it
    on every Admin API call anyway.
    """
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return float(exp) if exp is not None else None


class StaticTokenSession:
    """Session around a pre-obtained bearer token that cannot be refreshed."""

    def __init__(self, auth_server_url: str, realm: str, token: str, expires_at: Optional[float] = None):
        self.auth_server_url = auth_server_url.rstrip("/")
        self.realm = realm
        self.token = token
        self.expires_at = expires_at if expires_at is not None else token_expiry(token)

    def update_token(self, min_validity: int) -> bool:
        if self.expires_at is not None and time.time() + min_validity < self.expires_at:
            return False
        raise AuthExpired("Static token expired or expiring soon - obtain a new token")


class ServiceAccountSession:
    """Client-credentials session against ``/realms/{auth_realm}``.

    Args:
        auth_server_url: Keycloak base URL (e.g. http://keycloak:8080)
        realm: Realm whose Admin API is managed
        client_id: Service account client ID
        client_secret: Service account client secret
        auth_realm: Realm where the service account client lives (defaults to ``realm``)
    """

    def __init__(
        self,
        auth_server_url: str,
        realm: str,
        client_id: str,
        client_secret: str,
        auth_realm: Optional[str] = None,
        timeout: int = TOKEN_REQUEST_TIMEOUT,
    ):
        self.auth_server_url = auth_server_url.rstrip("/")
        self.realm = realm
        self.auth_realm = auth_realm or realm
        self.timeout = timeout
        self.token: Optional[str] = None
        self.expires_at: Optional[float] = None
        self.token_endpoint = f"{self.auth_server_url}/realms/{self.auth_realm}/protocol/openid-connect/token"
        self._oauth = OAuth2Session(
            client_id,
            client_secret,
            token_endpoint_auth_method="client_secret_post",
        )

    def update_token(self, min_validity: int) -> bool:
        if self.token and self.expires_at is not None and time.time() + min_validity < self.expires_at:
            return False
        token = self._oauth.fetch_token(
            self.token_endpoint,
            grant_type="client_credentials",
            timeout=self.timeout,
        )
        self.token = token["access_token"]
        expires_at = token.get("expires_at")
        if expires_at is None:
            expires_at = time.time() + int(token.get("expires_in", 60))
        self.expires_at = float(expires_at)
        logger.info("Obtained service account token for realm '%s'", self.auth_realm)
        return True
