from __future__ import annotations
from typing import Any, Dict, Optional
from flask import g, has_request_context
from posauthz import get_db
from posauthz.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[Any] = None, meta: Optional[Dict[str, Any]] = None):
    """Persist an audit log entry within the current DB session.

    Parameters:
      action: short action code e.g. ROLE.CREATE, ROLE.PERM.REPLACE, USER.ROLES.SET
      entity: optional entity name (Role, User)
      entity_id: optional primary key, stored as a string
      meta: additional JSON-safe dictionary (shallow copied)

    The actor and the role names it acted under come from the request guard
    (``g.current_user_id`` / ``g.current_roles``); outside a request both are empty.
    """
    actor = 0
    roles = []
    if has_request_context():
        actor = getattr(g, 'current_user_id', None) or 0
        roles = list(getattr(g, 'current_roles', None) or [])
    log = AuditLog(
        actor_user_id=actor,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        roles_snapshot={'roles': roles},
        meta=dict(meta or {}),
    )
    get_db().add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
