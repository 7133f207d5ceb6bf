from __future__ import annotations
"""Audit logging decorator for role and user-role write routes.

Usage:

@audit_log('ROLE.CREATE', entity='Role', entity_id_key='data.role.id', meta_keys=['data.role.name'])
def create_role():
    ... return success({'role': serialize_role(role)}, 201)

@audit_log('ROLE.UPDATE', entity='Role', entity_id_arg='role_id',
           diff_keys=['name', 'description'], pre_fetch=_role_before, after_key='data.role')
def update_role(role_id): ...

Parameters:
  action: audit action code (e.g. ROLE.CREATE)
  entity: optional entity label (Role, User)
  entity_id_key: dotted path in the returned JSON whose value becomes entity_id
  entity_id_arg: view keyword argument used when entity_id_key is absent
  meta_keys: dotted paths projected from the returned JSON into meta, keyed by their last segment
  meta_builder: callable(data, rv, args, kwargs) returning meta; overrides meta_keys
  diff_keys / pre_fetch / after_key: record before/after values of diff_keys;
    pre_fetch(args, kwargs) snapshots the entity before the view runs, after_key
    locates the updated entity in the returned JSON

Only successful responses (status < 400) are audited. The entry is committed
after the view; a failure while auditing is logged and never alters the response.
"""

import logging
from functools import wraps
from typing import Any, Callable, Dict, Iterable, Optional

from posauthz import get_db
from posauthz.services.audit import add_audit

logger = logging.getLogger(__name__)

_MISSING = object()


def _extract_payload(rv: Any):
    """Return (data, status) for the common Flask return shapes."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def _dig(data: Any, path: str):
    for part in path.split('.'):
        if not isinstance(data, dict) or part not in data:
            return _MISSING
        data = data[part]
    return data


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
    diff_keys: Optional[Iterable[str]] = None,
    pre_fetch: Optional[Callable[[tuple, dict], Dict[str, Any]]] = None,
    after_key: Optional[str] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            before = None
            if diff_keys and pre_fetch:
                try:
                    before = pre_fetch(args, kwargs)
                except Exception:
                    logger.exception('audit pre_fetch failed for %s', action)
            rv = fn(*args, **kwargs)
            try:
                data, status = _extract_payload(rv)
                if status >= 400:
                    return rv
                if not isinstance(data, dict):
                    data = {}
                entity_id = _dig(data, entity_id_key) if entity_id_key else _MISSING
                if entity_id is _MISSING:
                    entity_id = kwargs.get(entity_id_arg) if entity_id_arg else None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs) or {}
                else:
                    meta = {}
                    for key in meta_keys or ():
                        value = _dig(data, key)
                        if value is not _MISSING:
                            meta[key.rsplit('.', 1)[-1]] = value
                if diff_keys and isinstance(before, dict):
                    after = _dig(data, after_key) if after_key else data
                    changes = {}
                    if isinstance(after, dict):
                        for k in diff_keys:
                            if k in before and k in after and before[k] != after[k]:
                                changes[k] = {'before': before[k], 'after': after[k]}
                    if changes:
                        meta['changes'] = changes
                add_audit(action, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                logger.exception('audit entry %s could not be recorded', action)
                get_db().rollback()
            return rv
        return wrapper
    return outer
