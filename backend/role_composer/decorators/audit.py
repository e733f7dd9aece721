"""Audit logging decorator for route handlers that write to the Role Directory.

Usage:

@audit_log(lambda data: 'ROLE.UPDATE' if data.get('mode') == 'edit' else 'ROLE.CREATE',
           entity='Role', entity_id_key='id',
           meta_builder=lambda data, rv, args, kwargs: {'payload': data.get('payload')})
def submit(session): ... return {'id': ..., 'payload': ...}, 201

Parameters:
  action: audit action code, or a callable receiving the returned JSON dict.
  entity: optional entity label (Role).
  entity_id_key: key in the returned JSON whose value becomes entity_id.
  meta_keys: keys projected from the returned JSON into meta (shallow copy).
  meta_builder: callable(data, rv, args, kwargs) -> dict; overrides meta_keys.

Only successful responses (status < 400) are audited. Audit failures are logged
and never change the response.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Iterable, Optional, Union

from flask import current_app

from role_composer.services.audit import add_audit
from role_composer import get_db


def _extract_payload(rv: Any):
    """Return (data, status) from dict / (dict, status) / (dict, status, headers)."""
    if isinstance(rv, tuple) and rv:
        status = rv[1] if len(rv) > 1 and isinstance(rv[1], int) else 200
        return rv[0], status
    return rv, 200


def audit_log(
    action: Union[str, Callable[[dict], str]],
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, Any, tuple, dict], dict]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            rv = fn(*args, **kwargs)
            data, status = _extract_payload(rv)
            if status >= 400 or not isinstance(data, dict):
                return rv
            try:
                code = action(data) if callable(action) else action
                entity_id = data.get(entity_id_key) if entity_id_key else None
                meta = None
                if meta_builder:
                    meta = meta_builder(data, rv, args, kwargs)
                elif meta_keys:
                    meta = {k: data.get(k) for k in meta_keys if k in data}
                add_audit(code, entity, entity_id, meta)
                get_db().commit()
            except Exception:
                current_app.logger.exception('Audit logging failed for %s', fn.__name__)
                get_db().rollback()
            return rv
        return wrapper
    return outer
