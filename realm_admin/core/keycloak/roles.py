"""Keycloak realm role catalog and role assignment reconciliation."""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from realm_admin.core.models import Role, RoleCatalog

from .client import AdminApiClient
from .exceptions import ReconciliationPartialFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationPlan:
    """Minimal grant/revoke set moving actual role names to desired ones.

    ``unresolved`` holds names that had to be dropped because the catalog
    has no id for them (the mapping endpoints need id + name).
    """
    grant: tuple[Role, ...] = ()
    revoke: tuple[Role, ...] = ()
    unresolved: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_noop(self) -> bool:
        return not self.grant and not self.revoke


def plan_reconciliation(
    current: Iterable[str],
    desired: Iterable[str],
    catalog: RoleCatalog,
) -> ReconciliationPlan:
    """Compute the role diff between current and desired names.

    Args:
        current: Role names currently assigned
        desired: Role names the subject should end up with
        catalog: Role snapshot used to resolve names to ids

    Returns:
        ReconciliationPlan (order of roles follows the catalog)
    """
    current_names = set(current)
    desired_names = set(desired)

    grant, unknown_grant = catalog.resolve(desired_names - current_names)
    revoke, unknown_revoke = catalog.resolve(current_names - desired_names)
    unresolved = frozenset(unknown_grant | unknown_revoke)
    if unresolved:
        logger.warning("Dropping role(s) missing from catalog: %s", ", ".join(sorted(unresolved)))

    return ReconciliationPlan(grant=tuple(grant), revoke=tuple(revoke), unresolved=unresolved)


def reconcile(
    client: AdminApiClient,
    subject_id: str,
    current: Iterable[str],
    desired: Iterable[str],
    catalog: RoleCatalog,
) -> ReconciliationPlan:
    """Apply the role diff for one subject with at most one grant and one revoke call.

    There is no atomicity between the two calls. Re-running against fresh
    server state is safe and converges to ``desired``.

    Args:
        client: Admin API client
        subject_id: User ID
        current: Role names currently assigned
        desired: Role names the subject should end up with
        catalog: Role snapshot used to resolve names to ids

    Returns:
        The applied plan (no calls issued when ``plan.is_noop``)

    Raises:
        ReconciliationPartialFailure: If grant succeeded and revoke failed
        KeycloakError: If the first call failed (nothing applied)
    """
    plan = plan_reconciliation(current, desired, catalog)
    if plan.is_noop:
        logger.debug("Roles for user %s already match", subject_id)
        return plan

    applied: Optional[str] = None
    try:
        if plan.grant:
            client.add_realm_role_mappings(subject_id, [role.payload() for role in plan.grant])
            logger.info("Granted %s to user %s", [r.name for r in plan.grant], subject_id)
            applied = "grant"
        if plan.revoke:
            client.remove_realm_role_mappings(subject_id, [role.payload() for role in plan.revoke])
            logger.info("Revoked %s from user %s", [r.name for r in plan.revoke], subject_id)
    except Exception as exc:
        if applied is None:
            raise
        raise ReconciliationPartialFailure(plan, applied, exc) from exc

    return plan


class RoleService:
    """Service for reading realm roles and reconciling assignments."""

    def __init__(self, client: AdminApiClient, assignable_roles: Optional[Iterable[str]] = None):
        """Initialize role service.

        Args:
            client: Admin API client
            assignable_roles: Allow-list applied to the catalog (None keeps every role)
        """
        self.client = client
        self.assignable_roles = list(assignable_roles) if assignable_roles is not None else None

    def catalog(self) -> RoleCatalog:
        """Fetch a fresh role catalog snapshot."""
        return RoleCatalog.from_representations(self.client.get_realm_roles(), allowed=self.assignable_roles)

    def get_role(self, name: str) -> Optional[Role]:
        rep = self.client.get_role_by_name(name)
        return Role.from_representation(rep) if rep else None

    def reconcile(
        self,
        subject_id: str,
        current: Iterable[str],
        desired: Iterable[str],
        catalog: Optional[RoleCatalog] = None,
    ) -> ReconciliationPlan:
        """Reconcile using ``catalog`` or a freshly fetched one."""
        if catalog is None:
            catalog = self.catalog()
        return reconcile(self.client, subject_id, current, desired, catalog)
