"""Keycloak realm event log (read-only)."""
from __future__ import annotations
from typing import Iterable

from realm_admin.core.models import AuditEvent, EventPage, PageWindow

from .client import AdminApiClient

DEFAULT_EVENT_TYPES = ("LOGIN", "LOGOUT", "LOGIN_ERROR")


def list_events(
    client: AdminApiClient,
    window: PageWindow,
    types: Iterable[str] = DEFAULT_EVENT_TYPES,
) -> EventPage:
    """Fetch one window of realm events, newest first.

    The endpoint returns no total, so ``EventPage.has_more`` only guesses from
    whether the page came back full. Requires the ``view-events`` capability;
    without it the call raises Forbidden.
    """
    reps = client.get_events(window.offset, window.limit, types)
    return EventPage(events=[AuditEvent.from_representation(rep) for rep in reps], window=window)


def has_more(page: EventPage) -> bool:
    return page.has_more
