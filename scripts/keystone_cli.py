"""Command-line access to a Keystone endpoint.

This module serves as a CLI wrapper around keystone_client.core.keystone services.
Results are printed as JSON on stdout.
"""
from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

SCRIPT_DIR = Path(__file__).parent
PROJECT_ROOT = SCRIPT_DIR.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from keystone_client.config.settings import settings
from keystone_client.core.keystone import (
    KeystoneClient,
    KeystoneError,
    MetaService,
    ProjectService,
    RoleService,
    SubjectKind,
    TokenService,
)

# Commands that run without an existing token
_BOOTSTRAP_COMMANDS = {"token"}


def _to_json(result: Any) -> Any:
    if hasattr(result, "to_dict"):
        return result.to_dict()
    if isinstance(result, (list, tuple)):
        return [_to_json(item) for item in result]
    return result


def _emit(result: Any) -> None:
    print(json.dumps(_to_json(result), indent=2, sort_keys=True, default=str))


def main(argv: list[str] | None = None) -> None:
    """Command-line entry point."""
    parser = argparse.ArgumentParser(description="Keystone client helper")
    parser.add_argument("--url", default=settings.keystone_url)
    parser.add_argument("--api-version", default=settings.api_version, choices=["v2", "v3"])
    parser.add_argument("--timeout", type=float, default=None,
                       help="Request timeout in seconds (default: KEYSTONE_TIMEOUT or 9)")
    parser.add_argument("--token", default=os.environ.get("KEYSTONE_TOKEN"),
                       help="Bearer token for commands other than 'token'")
    parser.add_argument("--verbose", action="store_true")

    sub = parser.add_subparsers(dest="cmd")

    st = sub.add_parser("token")
    st.add_argument("--username", default=settings.username)
    st.add_argument("--password", default=settings.password)
    st.add_argument("--tenant-name", default=settings.tenant_name)

    spt = sub.add_parser("project-token")
    spt.add_argument("--project-id")
    spt.add_argument("--domain-id")
    spt.add_argument("--project-name")

    sub.add_parser("projects")

    sup = sub.add_parser("user-projects")
    sup.add_argument("--user-id", required=True)

    spn = sub.add_parser("project-by-name")
    spn.add_argument("--name", required=True)

    sub.add_parser("roles")

    sra = sub.add_parser("assignments")
    sra.add_argument("--project-id", required=True)

    for name in ("assign", "unassign"):
        sa = sub.add_parser(name)
        sa.add_argument("--project-id", required=True)
        sa.add_argument("--subject-id", required=True)
        sa.add_argument("--subject-kind", default="user", choices=[kind.value for kind in SubjectKind])
        sa.add_argument("--role-id", required=True)

    sub.add_parser("meta-environments")
    sub.add_parser("meta-owning-groups")

    spm = sub.add_parser("project-meta")
    spm.add_argument("--project-id", required=True)
    spm.add_argument("--set", dest="meta_items", action="append", default=[], metavar="KEY=VALUE",
                     help="Replace the project metadata (repeatable)")

    args = parser.parse_args(argv)

    if not args.cmd:
        parser.print_help()
        return

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    if args.cmd == "token" and (not args.username or not args.password):
        parser.error("Username and password required (or set KEYSTONE_USERNAME / KEYSTONE_PASSWORD)")
    if args.cmd == "project-token" and not args.project_id and not (args.domain_id and args.project_name):
        parser.error("project-token requires --project-id or --domain-id with --project-name")
    if args.cmd not in _BOOTSTRAP_COMMANDS and not args.token:
        parser.error("Missing --token (or KEYSTONE_TOKEN)")

    new_meta = {}
    for item in getattr(args, "meta_items", []):
        key, sep, value = item.partition("=")
        if not sep or not key:
            parser.error(f"--set expects KEY=VALUE, got {item!r}")
        new_meta[key] = value

    try:
        client = KeystoneClient(args.url, args.api_version, timeout=args.timeout)
        tokens = TokenService(client)
        projects = ProjectService(client)
        roles = RoleService(client)
        meta = MetaService(client)

        if args.cmd == "token":
            _emit(tokens.get_token(args.username, args.password, args.tenant_name))
        elif args.cmd == "project-token":
            if args.project_id:
                _emit(tokens.get_project_token(args.token, args.project_id))
            else:
                _emit(tokens.get_project_token_by_name(args.token, args.domain_id, args.project_name))
        elif args.cmd == "projects":
            _emit(projects.list_projects(args.token))
        elif args.cmd == "user-projects":
            _emit(projects.list_user_projects(args.token, args.user_id))
        elif args.cmd == "project-by-name":
            _emit(projects.get_project_by_name(args.token, args.name))
        elif args.cmd == "roles":
            _emit(roles.list_roles(args.token))
        elif args.cmd == "assignments":
            _emit(roles.list_role_assignments(args.token, args.project_id))
        elif args.cmd == "assign":
            roles.add_role_assignment(args.token, args.project_id, args.subject_id, args.subject_kind, args.role_id)
            print(f"[assign] Granted role '{args.role_id}' to {args.subject_kind} '{args.subject_id}'", file=sys.stderr)
        elif args.cmd == "unassign":
            roles.remove_role_assignment(args.token, args.project_id, args.subject_id, args.subject_kind, args.role_id)
            print(f"[unassign] Revoked role '{args.role_id}' from {args.subject_kind} '{args.subject_id}'", file=sys.stderr)
        elif args.cmd == "meta-environments":
            _emit(meta.list_meta_environments(args.token))
        elif args.cmd == "meta-owning-groups":
            _emit(meta.list_meta_owning_groups(args.token))
        elif args.cmd == "project-meta":
            if args.meta_items:
                _emit(meta.update_project_meta(args.token, args.project_id, new_meta))
            else:
                _emit(meta.list_project_meta(args.token, args.project_id))
        else:
            parser.print_help()
    except KeystoneError as e:
        print(f"[{args.cmd}] Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
