"""Command-line admin console for a Keycloak realm.

This module serves as a CLI wrapper around realm_admin.core services.
"""
from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from realm_admin.core.keycloak import (
    AdminApiClient,
    CredentialManager,
    ServiceAccountSession,
    RoleService,
    UserDirectory,
    list_events,
    DEFAULT_EVENT_TYPES,
)
from realm_admin.core.keycloak.exceptions import (
    KeycloakError,
    Forbidden,
    ReconciliationPartialFailure,
    UserNotFoundError,
)
from realm_admin.config import AdminConfig, load_settings
from realm_admin.core.models import PageWindow, Subject
from realm_admin.core.provisioning_service import create_user_with_roles, update_user

logger = logging.getLogger("realm_admin.cli")


def build_client(args: argparse.Namespace) -> AdminApiClient:
    """Authenticate with the service account and return an Admin API client."""
    session = ServiceAccountSession(
        args.kc_url,
        args.realm,
        args.svc_client_id,
        args.svc_client_secret,
        auth_realm=args.auth_realm,
    )
    credentials = CredentialManager(session, min_validity=args.min_validity)
    return AdminApiClient(credentials, timeout=args.timeout)


def _default_secret(settings: AdminConfig) -> str | None:
    try:
        return settings.service_client_secret_resolved
    except ValueError:
        return None


def cmd_list_users(client: AdminApiClient, args: argparse.Namespace) -> None:
    window = PageWindow.for_page(args.page, args.size)
    directory = UserDirectory(client, noise_roles=args.noise_roles, max_workers=args.workers)
    page = directory.list_enriched(window)
    for subject in page.items:
        status = "enabled" if subject.enabled else "disabled"
        roles = ",".join(sorted(subject.roles)) or "-"
        print(f"{subject.id}\t{subject.username}\t{subject.email or '-'}\t{status}\t{roles}")
    last = min(window.offset + len(page), page.total)
    print(f"# {window.offset + 1 if len(page) else 0}-{last} of {page.total}", file=sys.stderr)
    for warning in page.warnings:
        print(f"# warning: roles unavailable for {warning.username}: {warning.error}", file=sys.stderr)


def cmd_roles(client: AdminApiClient, args: argparse.Namespace) -> None:
    for role in RoleService(client, args.assignable_roles).catalog():
        print(f"{role.id}\t{role.name}")


def cmd_set_roles(client: AdminApiClient, args: argparse.Namespace) -> None:
    rep = client.find_user_by_username(args.username)
    if not rep:
        raise UserNotFoundError(f"User '{args.username}' not found")
    current = {r["name"] for r in client.get_user_realm_roles(rep["id"]) if r.get("name")}
    subject = Subject.from_representation(rep).with_roles(current)

    catalog = RoleService(client, args.assignable_roles).catalog()
    # Only roles the catalog knows about are managed here.
    desired = set(args.role or []) | (subject.roles - set(catalog.names))
    plan = update_user(client, subject, args.password, desired, catalog)

    if plan.is_noop:
        print(f"[set-roles] '{args.username}' already has the requested roles", file=sys.stderr)
    for role in plan.grant:
        print(f"[set-roles] granted '{role.name}' to '{args.username}'", file=sys.stderr)
    for role in plan.revoke:
        print(f"[set-roles] revoked '{role.name}' from '{args.username}'", file=sys.stderr)
    for name in sorted(plan.unresolved):
        print(f"[set-roles] skipped unknown role '{name}'", file=sys.stderr)


def cmd_create_user(client: AdminApiClient, args: argparse.Namespace) -> None:
    catalog = RoleService(client, args.assignable_roles).catalog()
    subject = create_user_with_roles(client, args.username, args.email, args.password, args.role or [], catalog)
    print(subject.id)
    print(f"[create-user] '{subject.username}' created with roles {sorted(subject.roles)}", file=sys.stderr)


def cmd_events(client: AdminApiClient, args: argparse.Namespace) -> None:
    window = PageWindow.for_page(args.page, args.size)
    page = list_events(client, window, args.type or DEFAULT_EVENT_TYPES)
    for event in page.events:
        detail = f"\t{event.error}" if event.error else ""
        print(
            f"{event.timestamp.isoformat()}\t{event.type}\t{event.actor or 'unknown'}"
            f"\t{event.ip_address or '-'}\t{event.client_id or '-'}{detail}"
        )
    if page.has_more:
        print(f"# more events: --page {args.page + 1}", file=sys.stderr)


COMMANDS = {
    "list-users": cmd_list_users,
    "roles": cmd_roles,
    "set-roles": cmd_set_roles,
    "create-user": cmd_create_user,
    "events": cmd_events,
}


def main() -> None:
    """Command-line entry point."""
    try:
        settings = load_settings()
    except RuntimeError as e:
        print(f"[config] {e} (set DEMO_MODE=true for local defaults)", file=sys.stderr)
        sys.exit(2)

    parser = argparse.ArgumentParser(description="Keycloak realm admin console")
    parser.add_argument("--kc-url", default=settings.keycloak_url)
    parser.add_argument("--realm", default=settings.keycloak_realm)
    parser.add_argument("--auth-realm", default=settings.keycloak_service_realm)
    parser.add_argument("--svc-client-id", default=settings.keycloak_service_client_id)
    parser.add_argument("--svc-client-secret", default=_default_secret(settings))
    parser.add_argument("--min-validity", type=int, default=settings.token_min_validity)
    parser.add_argument("--timeout", type=int, default=settings.request_timeout)
    parser.add_argument("-v", "--verbose", action="store_true")
    parser.set_defaults(noise_roles=settings.noise_roles, assignable_roles=settings.assignable_roles)

    sub = parser.add_subparsers(dest="cmd")

    su = sub.add_parser("list-users")
    su.add_argument("--page", type=int, default=0)
    su.add_argument("--size", type=int, default=10)
    su.add_argument("--workers", type=int, default=settings.enrichment_max_workers)

    sub.add_parser("roles")

    sr = sub.add_parser("set-roles")
    sr.add_argument("--username", required=True)
    sr.add_argument("--role", action="append", help="Desired role (repeatable); omit to revoke all")
    sr.add_argument("--password")

    sc = sub.add_parser("create-user")
    sc.add_argument("--username", required=True)
    sc.add_argument("--email")
    sc.add_argument("--password")
    sc.add_argument("--role", action="append")

    se = sub.add_parser("events")
    se.add_argument("--page", type=int, default=0)
    se.add_argument("--size", type=int, default=10)
    se.add_argument("--type", action="append", help=f"Event type (repeatable, default {','.join(DEFAULT_EVENT_TYPES)})")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    if not args.cmd:
        parser.print_help()
        return

    if not args.svc_client_secret:
        parser.error("Missing service account secret")

    client = build_client(args)
    try:
        COMMANDS[args.cmd](client, args)
    except ReconciliationPartialFailure as e:
        print(f"[{args.cmd}] Partial failure: {e} (re-run to converge)", file=sys.stderr)
        sys.exit(1)
    except Forbidden as e:
        print(f"[{args.cmd}] Access denied: {e}", file=sys.stderr)
        sys.exit(1)
    except KeycloakError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
