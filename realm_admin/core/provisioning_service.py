"""
Provisioning Service Layer: create and update flows for the admin console.

Architecture:
    Admin console / CLI ──> provisioning_service.py ──> realm_admin.core.keycloak ──> Keycloak

Create:  POST /users → re-query by username (id is not echoed) → password → grant roles
Update:  password (optional) → reconcile roles against the current assignment

Nothing here retries: a duplicate username surfaces as Conflict.
"""

from __future__ import annotations
import logging
from typing import Iterable, Optional

from realm_admin.core.keycloak import (
    AdminApiClient,
    ReconciliationPlan,
    UserNotFoundError,
    reconcile,
)
from realm_admin.core.models import RoleCatalog, Subject

logger = logging.getLogger(__name__)


def create_user_with_roles(
    client: AdminApiClient,
    username: str,
    email: Optional[str],
    password: Optional[str],
    roles: Iterable[str],
    catalog: RoleCatalog,
) -> Subject:
    """Create a user, set its password and grant the selected roles.

    Args:
        client: Admin API client
        username: New username
        email: Email address (optional)
        password: Initial non-temporary password (skipped when empty)
        roles: Role names to grant
        catalog: Role snapshot resolving names to ids

    Returns:
        The created subject with the roles that were granted

    Raises:
        Conflict: If the username already exists
        UserNotFoundError: If the created user cannot be found afterwards
    """
    client.create_user(username, email=email)

    created = client.find_user_by_username(username)
    if not created:
        raise UserNotFoundError(f"User '{username}' created but not found")
    subject = Subject.from_representation(created)
    logger.info("User '%s' created (id=%s)", username, subject.id)

    if password:
        client.reset_password(subject.id, password)

    plan = reconcile(client, subject.id, (), roles, catalog)
    return subject.with_roles(role.name for role in plan.grant)


def update_user(
    client: AdminApiClient,
    subject: Subject,
    password: Optional[str],
    desired_roles: Iterable[str],
    catalog: RoleCatalog,
) -> ReconciliationPlan:
    """Apply an edit: optional password change, then role reconciliation.

    ``subject.roles`` must come from a recent read (e.g. ``UserDirectory``);
    the diff is computed against it.
    """
    if password:
        client.reset_password(subject.id, password)
        logger.info("Password reset for '%s'", subject.username)

    return reconcile(client, subject.id, subject.roles, desired_roles, catalog)
