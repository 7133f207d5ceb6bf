"""Idempotent seed for the permission registry, system roles and the initial admin.

Usage:
    posauthz-seed                      # seed normally
    posauthz-seed --show-roles         # print role -> permission counts (after ensuring seed)
    posauthz-seed --dry-run            # run logic then rollback (no DB changes)
    posauthz-seed --validate           # exit 2 if stored codes/roles disagree with the registry
    posauthz-seed --export-json roles.json
"""
from __future__ import annotations
import argparse
import hashlib
import json
import logging
import sys
import textwrap
from typing import Dict, List, Optional

from sqlalchemy import inspect, select

from posauthz import create_app, get_db
from posauthz.constants.permissions import ADMIN_ROLE, FULL_SYSTEM_ACCESS, ROLE_DEFINITIONS, is_registered
from posauthz.models.authz import Base, Permission, Role, RolePermission, User, UserRole
from posauthz.services import grants
from posauthz.services.permissions import permission_rows, sync_permissions

logger = logging.getLogger(__name__)

EXIT_VALIDATION = 2
EXIT_CHECKSUM = 4


def ensure_schema(session):
    # Bootstrap fallback; real deployments run `alembic upgrade head`
    engine = session.get_bind()
    if not inspect(engine).has_table('permissions'):
        Base.metadata.create_all(engine)


def ensure_roles(session) -> int:
    """Create missing system roles. Returns number created.

    Permissions are only filled in for roles created now or still holding no
    rows, so admin edits to MANAGER, CASHIER and TECHNICIAN survive re-seeding.
    """
    existing = {r.name: r for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for name, definition in ROLE_DEFINITIONS.items():
        role = existing.get(name)
        if role is None:
            role = Role(name=name, description=definition.description, is_system=True, color=definition.color)
            session.add(role)
            created += 1
        elif role.unrestricted or role.permissions:
            continue
        grant = grants.grant_from_codes(definition.permissions)
        if grants.is_unrestricted(grant):
            role.unrestricted = True
            continue
        for perm in permission_rows(session, grant.codes):
            role.permissions.append(RolePermission(permission=perm))
    session.flush()
    return created


def ensure_initial_admin(session, email: str, password: str) -> Optional[User]:
    admin_role = session.execute(select(Role).where(Role.name == ADMIN_ROLE)).scalar_one_or_none()
    if admin_role is None:
        logger.warning('%s role missing; skipping admin user creation', ADMIN_ROLE)
        return None
    email = email.strip().lower()
    if session.execute(select(User).where(User.email == email)).scalar_one_or_none():
        return None
    user = User(name='Administrator', email=email, password_hash='')
    user.set_password(password)
    user.user_roles.append(UserRole(role=admin_role))
    session.add(user)
    session.flush()
    logger.info('Created initial admin user %s with temporary password', email)
    return user


def build_role_permission_map(session) -> Dict[str, List[str]]:
    return {
        role.name: role.grant.to_codes()
        for role in session.execute(select(Role).order_by(Role.name)).scalars().all()
    }


def roles_checksum(role_perm_map: Dict[str, List[str]]) -> str:
    canonical = json.dumps(role_perm_map, sort_keys=True, separators=(',', ':'))
    return hashlib.sha256(canonical.encode('utf-8')).hexdigest()


def validate(session) -> List[str]:
    """Stored permission rows and role grants checked against the registry."""
    problems = []
    for code in session.execute(select(Permission.code)).scalars().all():
        if not is_registered(code):
            problems.append(f'Permission row not in registry: {code}')
    for role in session.execute(select(Role)).scalars().all():
        if not role.unrestricted and not role.permissions:
            problems.append(f"Role '{role.name}' grants no permissions")
        if not role.unrestricted and FULL_SYSTEM_ACCESS in role.permission_codes:
            problems.append(f"Role '{role.name}' stores {FULL_SYSTEM_ACCESS} as a row but is not flagged unrestricted")
    for name in ROLE_DEFINITIONS:
        if session.execute(select(Role).where(Role.name == name)).scalar_one_or_none() is None:
            problems.append(f'System role missing: {name}')
    return problems


def print_role_summary(role_perm_map: Dict[str, List[str]], out=sys.stdout):
    if not role_perm_map:
        print('[INFO] No roles present.', file=out)
        return
    name_w = max(len(n) for n in role_perm_map)
    print(f"{'Role'.ljust(name_w)} | Count | Sample (up to 8)", file=out)
    print('-' * (name_w + 40), file=out)
    for name, codes in role_perm_map.items():
        print(f"{name.ljust(name_w)} | {str(len(codes)).rjust(5)} | {', '.join(codes[:8])}", file=out)


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog='posauthz-seed',
        description='Seed permissions, system roles and the initial admin user',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: posauthz-seed\n  dry run: posauthz-seed --dry-run\n  show roles: posauthz-seed --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role permission counts after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    p.add_argument('--export-json', nargs='?', const='-', metavar='FILE', help='Export role->permissions JSON (to FILE or stdout if omitted)')
    p.add_argument('--validate', action='store_true', help='Validate stored codes & system roles; exits non-zero on problems')
    p.add_argument('--fail-if-changed', metavar='CHECKSUM', help='Exit 4 if computed roles checksum differs from provided value')
    return p.parse_args(argv)


def run(session, args, admin_email: str, admin_password: str, out=sys.stdout) -> int:
    """Seed inside ``session``; commit unless dry-run. Returns the process exit code."""
    ensure_schema(session)
    created_p = sync_permissions(session)
    created_r = ensure_roles(session)
    ensure_initial_admin(session, admin_email, admin_password)
    role_perm_map = build_role_permission_map(session)
    checksum = roles_checksum(role_perm_map)
    if args.validate:
        problems = validate(session)
        if problems:
            print('[VALIDATION] FAIL:', file=out)
            for p in problems:
                print(' -', p, file=out)
            session.rollback()
            return EXIT_VALIDATION
        print('[VALIDATION] OK: All permission codes & system roles valid.', file=out)
    if args.fail_if_changed and checksum != args.fail_if_changed:
        print(f'[CHECKSUM] MISMATCH: expected {args.fail_if_changed} got {checksum}', file=out)
        session.rollback()
        return EXIT_CHECKSUM
    if args.dry_run:
        session.rollback()
        print(f'[DRY-RUN] (rolled back) Permissions would create: {created_p}, Roles would create: {created_r}', file=out)
    else:
        session.commit()
        print(f'[DONE] Permissions created: {created_p}, Roles created: {created_r}', file=out)
    if args.show_roles:
        print('\nRole Permission Summary:', file=out)
        print_role_summary(role_perm_map, out)
    if args.export_json is not None:
        payload = {
            'roles': role_perm_map,
            'meta': {
                'distinct_permissions': len({p for plist in role_perm_map.values() for p in plist}),
                'roles_checksum_sha256': checksum,
                'role_names_sorted': sorted(role_perm_map),
                'dry_run': args.dry_run,
            },
        }
        if args.export_json == '-':
            print(json.dumps(payload, indent=2, sort_keys=True), file=out)
        else:
            with open(args.export_json, 'w', encoding='utf-8') as f:
                json.dump(payload, f, indent=2, sort_keys=True)
            print(f'[INFO] Exported JSON to {args.export_json}', file=out)
    return 0


def main(argv=None, app=None) -> int:
    args = parse_args(argv)
    app = app or create_app()
    with app.app_context():
        session = get_db()
        try:
            return run(session, args, app.config['SEED_ADMIN_EMAIL'], app.config['SEED_ADMIN_PASSWORD'])
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


if __name__ == '__main__':
    sys.exit(main())
