"""Keycloak Admin API client library.

Architecture:
- credentials.py: Bearer credential lifecycle (refresh coalescing, session adapters)
- client.py: HTTP client with error classification and typed endpoints
- users.py: Paginated user listing enriched with role names
- roles.py: Role catalog and grant/revoke reconciliation
- events.py: Realm event log reader
- exceptions.py: Typed exceptions for error handling

Usage:
    from realm_admin.core.keycloak import (
        AdminApiClient, CredentialManager, ServiceAccountSession, UserDirectory,
    )

    session = ServiceAccountSession("http://keycloak:8080", "demo", "automation-cli", secret)
    client = AdminApiClient(CredentialManager(session))
    page = UserDirectory(client).list_enriched(PageWindow(0, 10))
"""
from .client import AdminApiClient, REQUEST_TIMEOUT
from .credentials import (
    Credential,
    CredentialManager,
    OIDCSession,
    ServiceAccountSession,
    StaticTokenSession,
    DEFAULT_MIN_VALIDITY,
    token_expiry,
)
from .exceptions import (
    KeycloakError,
    KeycloakAPIError,
    ApiError,
    AuthExpired,
    Forbidden,
    NotFound,
    Conflict,
    UserNotFoundError,
    ReconciliationPartialFailure,
)
from .users import UserDirectory, default_noise_roles
from .roles import RoleService, ReconciliationPlan, plan_reconciliation, reconcile
from .events import DEFAULT_EVENT_TYPES, list_events, has_more

__all__ = [
    # Client
    "AdminApiClient",
    "REQUEST_TIMEOUT",

    # Credentials
    "Credential",
    "CredentialManager",
    "OIDCSession",
    "ServiceAccountSession",
    "StaticTokenSession",
    "DEFAULT_MIN_VALIDITY",
    "token_expiry",

    # Exceptions
    "KeycloakError",
    "KeycloakAPIError",
    "ApiError",
    "AuthExpired",
    "Forbidden",
    "NotFound",
    "Conflict",
    "UserNotFoundError",
    "ReconciliationPartialFailure",

    # Services
    "UserDirectory",
    "default_noise_roles",
    "RoleService",
    "ReconciliationPlan",
    "plan_reconciliation",
    "reconcile",

    # Events
    "DEFAULT_EVENT_TYPES",
    "list_events",
    "has_more",
]
