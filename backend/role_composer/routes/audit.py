from flask import Blueprint, request, abort
from role_composer.constants.roles import PERM_SETTINGS_MANAGE
from role_composer.models.audit import AuditLog
from role_composer import get_db
from role_composer.config.pagination import normalize_pagination, build_list_payload
from role_composer.decorators.auth import require_permissions

audit_bp = Blueprint('audit', __name__)


@audit_bp.get('/logs')
@require_permissions(PERM_SETTINGS_MANAGE)
def list_audit_logs():
    session = get_db()
    q = session.query(AuditLog)
    for arg, column in (
        ('actor_user_id', AuditLog.actor_user_id),
        ('action', AuditLog.action),
        ('entity', AuditLog.entity),
        ('entity_id', AuditLog.entity_id),
    ):
        value = request.args.get(arg)
        if value:
            q = q.filter(column == value)
    try:
        limit, offset = normalize_pagination(request.args.get('limit'), request.args.get('offset'))
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    rows = q.order_by(AuditLog.id.desc()).offset(offset).limit(limit).all()
    return build_list_payload([
        {
            'id': r.id,
            'actor_user_id': r.actor_user_id,
            'action': r.action,
            'entity': r.entity,
            'entity_id': r.entity_id,
            'meta': r.meta,
            'created_at': r.created_at.isoformat() if r.created_at else None,
        } for r in rows
    ], total, limit, offset)
