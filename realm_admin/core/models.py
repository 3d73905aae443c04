"""Typed views over Keycloak Admin API representations."""
from __future__ import annotations
import datetime
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator, Optional


@dataclass(frozen=True)
class PageWindow:
    """(offset, limit) slice of a server-ordered collection.

    There is no server cursor, so windows are pure offset arithmetic and only
    approximately stable while other admins create or delete users.
    """
    offset: int = 0
    limit: int = 10

    def __post_init__(self):
        if self.offset < 0:
            raise ValueError(f"offset must be >= 0, got {self.offset}")
        if self.limit <= 0:
            raise ValueError(f"limit must be > 0, got {self.limit}")

    @classmethod
    def for_page(cls, page: int, size: int) -> "PageWindow":
        """Window for a 0-indexed page number."""
        return cls(offset=max(page, 0) * size, limit=size)

    @property
    def page(self) -> int:
        return self.offset // self.limit

    def next(self) -> "PageWindow":
        return PageWindow(self.offset + self.limit, self.limit)

    def previous(self) -> "PageWindow":
        return PageWindow(max(self.offset - self.limit, 0), self.limit)

    def params(self) -> dict[str, int]:
        return {"first": self.offset, "max": self.limit}


@dataclass(frozen=True)
class Role:
    """Realm role: ``name`` is the stable key, ``id`` is needed for mappings."""
    id: str
    name: str

    @classmethod
    def from_representation(cls, rep: dict[str, Any]) -> "Role":
        return cls(id=rep["id"], name=rep["name"])

    def payload(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name}


class RoleCatalog:
    """Immutable snapshot of realm roles keyed by name.

    Passed explicitly to whoever needs to resolve role names to ids; refresh it
    by fetching a new one, never by mutating this one.
    """

    def __init__(self, roles: Iterable[Role] = ()):
        self._by_name: dict[str, Role] = {role.name: role for role in sorted(roles, key=lambda r: r.name)}

    @classmethod
    def from_representations(
        cls,
        reps: Iterable[dict[str, Any]],
        allowed: Optional[Iterable[str]] = None,
    ) -> "RoleCatalog":
        """Build a catalog, optionally restricted to an allow-list of names."""
        allowed_names = set(allowed) if allowed is not None else None
        roles = [
            Role.from_representation(rep)
            for rep in reps or []
            if rep.get("id") and rep.get("name")
            and (allowed_names is None or rep["name"] in allowed_names)
        ]
        return cls(roles)

    def get(self, name: str) -> Optional[Role]:
        return self._by_name.get(name)

    def resolve(self, names: Iterable[str]) -> tuple[list[Role], set[str]]:
        """Split names into known roles (catalog order) and unknown names."""
        wanted = set(names)
        found = [role for name, role in self._by_name.items() if name in wanted]
        return found, wanted - self._by_name.keys()

    @property
    def names(self) -> list[str]:
        return list(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Role]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def __repr__(self) -> str:
        return f"RoleCatalog({self.names})"


@dataclass(frozen=True)
class Subject:
    """Managed user account.

    ``roles`` is derived data: empty until the role mappings were fetched.
    """
    id: str
    username: str
    email: Optional[str] = None
    enabled: bool = True
    roles: frozenset[str] = frozenset()

    @classmethod
    def from_representation(cls, rep: dict[str, Any]) -> "Subject":
        return cls(
            id=rep["id"],
            username=rep.get("username", ""),
            email=rep.get("email") or None,
            enabled=bool(rep.get("enabled", False)),
        )

    def with_roles(self, names: Iterable[str]) -> "Subject":
        return replace(self, roles=frozenset(names))


@dataclass(frozen=True)
class PartialEnrichmentFailure:
    """Warning record: a user's role mappings could not be fetched."""
    subject_id: str
    username: str
    error: str


@dataclass
class EnrichedPage:
    items: list[Subject]
    total: int
    warnings: list[PartialEnrichmentFailure] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class AuditEvent:
    """Immutable entry of the realm event log (login, logout, ...)."""
    time: int
    type: str
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    client_id: Optional[str] = None
    error: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict, compare=False)

    @classmethod
    def from_representation(cls, rep: dict[str, Any]) -> "AuditEvent":
        return cls(
            time=int(rep.get("time", 0)),
            type=rep.get("type", ""),
            user_id=rep.get("userId"),
            ip_address=rep.get("ipAddress"),
            client_id=rep.get("clientId"),
            error=rep.get("error"),
            details=dict(rep.get("details") or {}),
        )

    @property
    def timestamp(self) -> datetime.datetime:
        """Event time (Keycloak stores epoch milliseconds)."""
        return datetime.datetime.fromtimestamp(self.time / 1000, tz=datetime.timezone.utc)

    @property
    def actor(self) -> Optional[str]:
        return self.details.get("username") or self.user_id


@dataclass
class EventPage:
    events: list[AuditEvent]
    window: PageWindow

    @property
    def has_more(self) -> bool:
        # No total is available for /events; a full page suggests more.
        return len(self.events) == self.window.limit

    def __len__(self) -> int:
        return len(self.events)
