from __future__ import annotations
from typing import Dict, Iterable, List
from sqlalchemy import select
from posauthz.models.authz import Permission
from posauthz.constants.permissions import PERMISSION_CATEGORIES, get_permission


def sync_permissions(session) -> int:
    """Insert registry codes missing from the permissions table. Returns number created.

    The static registry is the source of truth; rows only exist so role_permissions can reference them.
    """
    existing = {p.code: p for p in session.execute(select(Permission)).scalars().all()}
    created = 0
    for cat in PERMISSION_CATEGORIES.values():
        for perm in cat.permissions:
            row = existing.get(perm.code)
            if row is None:
                session.add(Permission(code=perm.code, category=cat.name, description=perm.description))
                created += 1
            elif row.category != cat.name or row.description != perm.description:
                row.category = cat.name
                row.description = perm.description
    if created:
        session.flush()
    return created


def permission_rows(session, codes: Iterable[str]) -> List[Permission]:
    codes = sorted(set(codes))
    if not codes:
        return []
    rows = session.execute(select(Permission).where(Permission.code.in_(codes))).scalars().all()
    if len(rows) != len(codes):
        sync_permissions(session)
        rows = session.execute(select(Permission).where(Permission.code.in_(codes))).scalars().all()
    return rows


def permission_json(code: str) -> Dict[str, str]:
    perm = get_permission(code)
    return {'code': perm.code, 'description': perm.description, 'category': perm.category}


def grouped_permissions_json() -> Dict[str, List[Dict[str, str]]]:
    return {
        cat.name: [permission_json(p.code) for p in cat.permissions]
        for cat in PERMISSION_CATEGORIES.values()
    }
