"""Keycloak user listing with per-user role enrichment."""
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional

from realm_admin.core.models import EnrichedPage, PageWindow, PartialEnrichmentFailure, Subject

from .client import AdminApiClient
from .exceptions import AuthExpired

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8
BUILTIN_NOISE_ROLES = ("offline_access", "uma_authorization")


def default_noise_roles(realm: str) -> frozenset[str]:
    """Pseudo-roles Keycloak maps to every user of ``realm``."""
    return frozenset(BUILTIN_NOISE_ROLES) | {f"default-roles-{realm}"}


class UserDirectory:
    """Read-only view of a realm's users, each carrying its role names.

    The page request and the total count run concurrently, then every user's
    role mappings are fetched concurrently (bounded by ``max_workers``). A user
    whose mappings cannot be fetched is still returned, with no roles and a
    warning entry, so a page always renders under partial backend failure.
    """

    def __init__(
        self,
        client: AdminApiClient,
        noise_roles: Optional[Iterable[str]] = None,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        """Initialize user directory.

        Args:
            client: Admin API client for the realm
            noise_roles: Role names hidden from results (defaults to the realm's built-ins)
            max_workers: Upper bound on concurrent requests
        """
        self.client = client
        self.noise_roles = frozenset(noise_roles) if noise_roles is not None else default_noise_roles(client.realm)
        self.max_workers = max(1, max_workers)

    def list_enriched(self, window: PageWindow) -> EnrichedPage:
        """Fetch one page of users with their realm role names.

        Args:
            window: Offset/limit of the page

        Returns:
            EnrichedPage in server order, with the realm-wide total

        Raises:
            KeycloakError: If the page or the count request fails
        """
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            page_future = pool.submit(self.client.get_users, window.offset, window.limit)
            count_future = pool.submit(self.client.get_users_count)
            subjects = [Subject.from_representation(rep) for rep in page_future.result()]
            total = count_future.result()

            role_futures = [pool.submit(self._role_names, subject) for subject in subjects]
            items: list[Subject] = []
            warnings: list[PartialEnrichmentFailure] = []
            for subject, future in zip(subjects, role_futures):
                try:
                    items.append(subject.with_roles(future.result()))
                except AuthExpired:
                    raise
                except Exception as exc:
                    logger.warning("Failed to fetch roles for user %s: %s", subject.username, exc)
                    warnings.append(PartialEnrichmentFailure(subject.id, subject.username, str(exc)))
                    items.append(subject.with_roles(()))

        return EnrichedPage(items=items, total=total, warnings=warnings)

    def _role_names(self, subject: Subject) -> set[str]:
        reps = self.client.get_user_realm_roles(subject.id)
        return {rep["name"] for rep in reps if rep.get("name") and rep["name"] not in self.noise_roles}
