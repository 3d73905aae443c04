"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SECRETS_DIR = Path("/run/secrets")

DEFAULT_ASSIGNABLE_ROLES = ["admin", "doctor", "doctoradmin"]


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = SECRETS_DIR / secret_name

    if secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.debug("Loaded %s from %s", secret_name, SECRETS_DIR)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read %s/%s: %s", SECRETS_DIR, secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _split_list(raw: Optional[str]) -> list[str]:
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}")


@dataclass
class AdminConfig:
    """Configuration for the realm admin client."""
    demo_mode: bool

    # Keycloak
    keycloak_url: str = "http://127.0.0.1:8080"
    keycloak_realm: str = "demo"
    keycloak_service_realm: str = "demo"

    # Service Account
    keycloak_service_client_id: str = "automation-cli"
    keycloak_service_client_secret: str = ""

    # Admin API behaviour
    token_min_validity: int = 30
    request_timeout: int = 5
    enrichment_max_workers: int = 8
    noise_roles: Optional[list[str]] = None
    assignable_roles: list[str] = field(default_factory=lambda: list(DEFAULT_ASSIGNABLE_ROLES))

    @property
    def service_client_secret_resolved(self) -> str:
        """Get Keycloak service account client secret with smart fallback.

        Priority:
        1. Configured value in keycloak_service_client_secret
        2. Docker secrets: /run/secrets/keycloak_service_client_secret
        3. Environment variable: KEYCLOAK_SERVICE_CLIENT_SECRET
        4. Demo mode: "demo-service-secret"

        Raises:
            ValueError: If secret not found outside demo mode
        """
        if self.keycloak_service_client_secret:
            return self.keycloak_service_client_secret

        secret = _load_secret_from_file("keycloak_service_client_secret", "KEYCLOAK_SERVICE_CLIENT_SECRET")
        if secret:
            return secret

        if self.demo_mode:
            return "demo-service-secret"

        raise ValueError(
            "KEYCLOAK_SERVICE_CLIENT_SECRET not found. "
            "Set DEMO_MODE=true or provide secret via Docker secrets or environment variable."
        )


def _get_or_default(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or fall back to the demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> AdminConfig:
    """Load settings from environment and /run/secrets."""
    demo_mode = os.environ.get("DEMO_MODE", "false").lower() == "true"

    keycloak_url = _get_or_default("KEYCLOAK_URL", demo_default="http://127.0.0.1:8080", demo_mode=demo_mode).rstrip("/")
    keycloak_realm = _get_or_default("KEYCLOAK_REALM", demo_default="demo", demo_mode=demo_mode)
    keycloak_service_realm = os.environ.get("KEYCLOAK_SERVICE_REALM", keycloak_realm)

    keycloak_service_client_id = os.environ.get("KEYCLOAK_SERVICE_CLIENT_ID", "automation-cli")
    keycloak_service_client_secret = _load_secret_from_file(
        "keycloak_service_client_secret",
        "KEYCLOAK_SERVICE_CLIENT_SECRET",
    ) or ""

    token_min_validity = _int_env("TOKEN_MIN_VALIDITY", 30)
    if token_min_validity < 0:
        raise RuntimeError("TOKEN_MIN_VALIDITY must be >= 0")

    noise_roles = _split_list(os.environ.get("KEYCLOAK_NOISE_ROLES")) or None
    assignable_roles = _split_list(os.environ.get("KEYCLOAK_ASSIGNABLE_ROLES")) or list(DEFAULT_ASSIGNABLE_ROLES)

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info("Mode=%s; realm=%s; client_id=%s", mode_label, keycloak_realm, keycloak_service_client_id)

    return AdminConfig(
        demo_mode=demo_mode,
        keycloak_url=keycloak_url,
        keycloak_realm=keycloak_realm,
        keycloak_service_realm=keycloak_service_realm,
        keycloak_service_client_id=keycloak_service_client_id,
        keycloak_service_client_secret=keycloak_service_client_secret,
        token_min_validity=token_min_validity,
        request_timeout=_int_env("KEYCLOAK_REQUEST_TIMEOUT", 5),
        enrichment_max_workers=max(1, _int_env("ENRICHMENT_MAX_WORKERS", 8)),
        noise_roles=noise_roles,
        assignable_roles=assignable_roles,
    )
