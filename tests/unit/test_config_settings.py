import pytest

from realm_admin.config import settings
from realm_admin.config.settings import AdminConfig, _get_or_default, load_settings

ENV_VARS = [
    "DEMO_MODE",
    "KEYCLOAK_URL",
    "KEYCLOAK_REALM",
    "KEYCLOAK_SERVICE_REALM",
    "KEYCLOAK_SERVICE_CLIENT_ID",
    "KEYCLOAK_SERVICE_CLIENT_SECRET",
    "TOKEN_MIN_VALIDITY",
    "ENRICHMENT_MAX_WORKERS",
    "KEYCLOAK_NOISE_ROLES",
    "KEYCLOAK_ASSIGNABLE_ROLES",
    "KEYCLOAK_REQUEST_TIMEOUT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    # Empty /run/secrets stand-in
    monkeypatch.setattr(settings, "SECRETS_DIR", tmp_path)


def test_demo_mode_defaults(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")

    cfg = load_settings()

    assert cfg.demo_mode is True
    assert cfg.keycloak_url == "http://127.0.0.1:8080"
    assert cfg.keycloak_realm == "demo"
    assert cfg.keycloak_service_realm == "demo"
    assert cfg.token_min_validity == 30
    assert cfg.enrichment_max_workers == 8
    assert cfg.noise_roles is None
    assert cfg.assignable_roles == ["admin", "doctor", "doctoradmin"]
    assert cfg.service_client_secret_resolved == "demo-service-secret"


def test_production_requires_keycloak_url():
    with pytest.raises(RuntimeError):
        load_settings()


def test_production_values_from_env(monkeypatch):
    monkeypatch.setenv("KEYCLOAK_URL", "https://sso.example.com/")
    monkeypatch.setenv("KEYCLOAK_REALM", "clinic")
    monkeypatch.setenv("KEYCLOAK_SERVICE_REALM", "master")
    monkeypatch.setenv("TOKEN_MIN_VALIDITY", "45")
    monkeypatch.setenv("ENRICHMENT_MAX_WORKERS", "0")
    monkeypatch.setenv("KEYCLOAK_NOISE_ROLES", "offline_access, uma_authorization")
    monkeypatch.setenv("KEYCLOAK_ASSIGNABLE_ROLES", "nurse,doctor")

    cfg = load_settings()

    assert cfg.keycloak_url == "https://sso.example.com"
    assert cfg.keycloak_realm == "clinic"
    assert cfg.keycloak_service_realm == "master"
    assert cfg.token_min_validity == 45
    assert cfg.enrichment_max_workers == 1
    assert cfg.noise_roles == ["offline_access", "uma_authorization"]
    assert cfg.assignable_roles == ["nurse", "doctor"]


def test_invalid_integer_rejected(monkeypatch):
    monkeypatch.setenv("DEMO_MODE", "true")
    monkeypatch.setenv("TOKEN_MIN_VALIDITY", "soon")

    with pytest.raises(RuntimeError):
        load_settings()


def test_secret_prefers_run_secrets(monkeypatch, tmp_path):
    (tmp_path / "keycloak_service_client_secret").write_text("file-secret\n")
    monkeypatch.setenv("KEYCLOAK_SERVICE_CLIENT_SECRET", "env-secret")
    monkeypatch.setenv("DEMO_MODE", "true")

    assert load_settings().keycloak_service_client_secret == "file-secret"


def test_secret_falls_back_to_env(monkeypatch):
    monkeypatch.setenv("KEYCLOAK_SERVICE_CLIENT_SECRET", "env-secret")

    assert AdminConfig(demo_mode=False).service_client_secret_resolved == "env-secret"


def test_missing_secret_in_production_raises():
    with pytest.raises(ValueError):
        AdminConfig(demo_mode=False).service_client_secret_resolved


def test_get_or_default_optional_returns_empty():
    assert _get_or_default("KEYCLOAK_URL", required=False) == ""
