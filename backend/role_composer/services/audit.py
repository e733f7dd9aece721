from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity, get_jwt
from role_composer import get_db
from role_composer.models.audit import AuditLog


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None):
    """Stage an audit log entry in the current DB session.

    Parameters:
      action: short action code e.g. ROLE.CREATE, ROLE.UPDATE
      entity: optional entity name (Role)
      entity_id: optional identifier as returned by the Role Directory
      meta: additional JSON-safe dictionary (shallow copied)

    Must run inside a request with a verified JWT. No commit here; the caller
    controls durability.
    """
    session = get_db()
    claims = get_jwt() or {}
    ident = get_jwt_identity()
    log = AuditLog(
        actor_user_id=str(ident) if ident is not None else '',
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        perms_snapshot={'perms': claims.get('perms', [])},
        meta=dict(meta or {}),
    )
    session.add(log)
    return log
