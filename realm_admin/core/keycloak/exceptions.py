"""Keycloak-specific exceptions for error handling.

Hierarchy:
    KeycloakError
    ├── AuthExpired                    (credential could not be refreshed)
    ├── UserNotFoundError
    ├── ReconciliationPartialFailure   (grant or revoke applied, not both)
    └── KeycloakAPIError / ApiError    (non-2xx response)
        ├── Forbidden   (403)
        ├── NotFound    (404)
        └── Conflict    (409)
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .roles import ReconciliationPlan


class KeycloakError(Exception):
    """Base exception for all Keycloak operations."""
    pass


class AuthExpired(KeycloakError):
    """The bearer credential expired and could not be refreshed.

    Unrecoverable for the current operation: the caller has to
    re-authenticate before trying again.
    """
    pass


class KeycloakAPIError(KeycloakError):
    """HTTP error from Keycloak Admin API.

    Attributes:
        status_code: HTTP status code (0 when the request never got a response)
        message: Raw response body or transport error message
        endpoint: API endpoint that failed
    """

    def __init__(self, status_code: int, message: str, endpoint: str = ""):
        self.status_code = status_code
        self.message = message
        self.endpoint = endpoint
        super().__init__(f"[{status_code}] {endpoint}: {message}")

    @property
    def status(self) -> int:
        return self.status_code

    @property
    def body(self) -> str:
        return self.message


ApiError = KeycloakAPIError


class Forbidden(KeycloakAPIError):
    """403: caller lacks the required capability (e.g. manage-users, view-events)."""
    pass


class NotFound(KeycloakAPIError):
    """404: target resource does not exist."""
    pass


class Conflict(KeycloakAPIError):
    """409: resource already exists or is in a conflicting state (duplicate username)."""
    pass


class UserNotFoundError(KeycloakError):
    """User lookup failed - username does not exist."""
    pass


class ReconciliationPartialFailure(KeycloakError):
    """One of grant/revoke succeeded and the other did not.

    The subject is left in a mixed state. Re-running the reconciliation
    against freshly read server state converges to the desired set.

    Attributes:
        plan: The plan that was being applied
        applied: Which half succeeded ("grant" or "revoke")
        cause: Error raised by the half that failed
    """

    def __init__(self, plan: "ReconciliationPlan", applied: str, cause: Exception):
        self.plan = plan
        self.applied = applied
        self.cause = cause
        failed = "revoke" if applied == "grant" else "grant"
        super().__init__(f"Role {applied} applied but {failed} failed: {cause}")


def error_for_status(status_code: int, message: str, endpoint: str = "") -> KeycloakAPIError:
    """Map an HTTP status to the matching typed error."""
    error_cls: Optional[type[KeycloakAPIError]] = {
        403: Forbidden,
        404: NotFound,
        409: Conflict,
    }.get(status_code)
    return (error_cls or KeycloakAPIError)(status_code, message, endpoint)
