from flask import Blueprint, request, abort, current_app
from role_composer.constants.roles import (
    PERM_ROLE_MANAGE, SCOPE_LEVELS, DESCRIPTION_MAX_LENGTH, AUDIT_ROLE_CREATE, AUDIT_ROLE_UPDATE,
)
from role_composer.decorators.auth import require_permissions, editor_session
from role_composer.decorators.audit import audit_log
from role_composer.services.directory import DirectoryError, get_directory
from role_composer.services.policy import bearer_token, current_user_id
from role_composer.services.selection import project_groups, orphan_group_ids
from role_composer.services.serializer import serialize_selection, build_role_payload
from role_composer.services.sessions import get_sessions
from role_composer.utils.validation import validate_choice, validate_role_fields

editor_bp = Blueprint('editor', __name__)

NOTICE_SUBMIT_FAILED = 'submit.failed'


def _session_view(editing):
    fields, state, catalog = editing.snapshot()
    blocker = editing.submit_blocker()
    return {
        'id': editing.id,
        'mode': editing.mode,
        'role_id': editing.role_id,
        'fields': {
            'name': fields['name'],
            'description': fields['description'],
            'scopeLevel': fields['scope_level'],
            'branchId': fields['branch_id'],
        },
        'catalog_loaded': editing.catalog_loaded,
        'role_loaded': editing.role_loaded,
        'groups': [g.to_dict() for g in project_groups(state, catalog)],
        'orphan_groups': orphan_group_ids(state, catalog),
        'selection': state.to_dict(),
        'notices': [n.to_dict() for n in editing.notices()],
        'payload': serialize_selection(state, catalog),
        'can_submit': blocker is None,
        'submit_blocker': blocker,
    }


def _flag(data) -> bool:
    on = data.get('on')
    if not isinstance(on, bool):
        abort(400, description='on must be boolean')
    return on


def _require_group(editing, group_id: str):
    grp = editing.catalog.group(group_id)
    if grp is None:
        abort(404, description='Unknown permission group')
    return grp


@editor_bp.post('/sessions')
@require_permissions(PERM_ROLE_MANAGE)
def open_session():
    # body is optional for the create flow
    data = request.get_json(silent=True) or {}
    role_id = data.get('role_id')
    branch_id = data.get('branch_id')
    editing = get_sessions().open(
        current_user_id(),
        role_id=str(role_id) if role_id else None,
        branch_id=str(branch_id) if branch_id else None,
    )
    directory = get_directory(bearer_token())
    editing.load_catalog(directory)
    editing.load_role(directory)
    return _session_view(editing), 201


@editor_bp.get('/sessions/<session_id>')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def get_session(editing):
    return _session_view(editing)


@editor_bp.delete('/sessions/<session_id>')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def close_session(editing):
    get_sessions().close(editing.id)
    return {'id': editing.id, 'status': 'closed'}


@editor_bp.put('/sessions/<session_id>/fields')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def update_fields(editing):
    data = request.json or {}
    for key in ('name', 'description', 'branchId'):
        if data.get(key) is not None and not isinstance(data[key], str):
            abort(400, description=f'{key} must be a string')
    changes = {}
    if 'name' in data:
        changes['name'] = data['name'] or ''
    if 'description' in data:
        description = data['description'] or ''
        if len(description) > DESCRIPTION_MAX_LENGTH:
            abort(400, description=f'Description must be at most {DESCRIPTION_MAX_LENGTH} characters')
        changes['description'] = description
    if 'scopeLevel' in data:
        changes['scope_level'] = validate_choice(data['scopeLevel'], SCOPE_LEVELS, 'scopeLevel')
    if 'branchId' in data:
        changes['branch_id'] = str(data['branchId']) if data['branchId'] else None
    with editing.lock:
        editing.fields.update(changes)
    return _session_view(editing)


@editor_bp.put('/sessions/<session_id>/groups/<group_id>')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def toggle_group(editing, group_id: str):
    on = _flag(request.json or {})
    with editing.lock:
        # an orphan group may still be switched off
        if editing.catalog.group(group_id) is None and (on or not editing.state.is_group_selected(group_id)):
            abort(404, description='Unknown permission group')
        editing.state.toggle_group(editing.catalog, group_id, on)
    return _session_view(editing)


@editor_bp.put('/sessions/<session_id>/permissions/<permission_id>')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def toggle_permission(editing, permission_id: str):
    on = _flag(request.json or {})
    with editing.lock:
        known = editing.catalog.permission(permission_id) is not None
        if not known and (on or permission_id not in editing.state.checked_permissions):
            abort(404, description='Unknown permission')
        editing.state.toggle_permission(editing.catalog, permission_id, on)
    return _session_view(editing)


def _bulk(editing, group_id: str, select: bool):
    with editing.lock:
        grp = _require_group(editing, group_id)
        if not editing.state.is_group_selected(grp.id) or len(grp.permissions) < 2:
            abort(409, description='Bulk selection is not offered for this group')
        if select:
            editing.state.select_all_in_group(editing.catalog, grp.id)
        else:
            editing.state.deselect_all_in_group(editing.catalog, grp.id)
    return _session_view(editing)


@editor_bp.post('/sessions/<session_id>/groups/<group_id>/select-all')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def select_all(editing, group_id: str):
    return _bulk(editing, group_id, True)


@editor_bp.post('/sessions/<session_id>/groups/<group_id>/deselect-all')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def deselect_all(editing, group_id: str):
    return _bulk(editing, group_id, False)


@editor_bp.get('/sessions/<session_id>/payload')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def preview_payload(editing):
    fields, state, catalog = editing.snapshot()
    return build_role_payload(
        fields, state, catalog,
        include_branch=editing.mode == 'create',
        strict=current_app.config['STRICT_SELECTION'],
    )


@editor_bp.post('/sessions/<session_id>/catalog/reload')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def reload_catalog(editing):
    editing.load_catalog(get_directory(bearer_token()))
    return _session_view(editing)


@editor_bp.post('/sessions/<session_id>/role/reload')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
def reload_role(editing):
    if editing.mode != 'edit':
        abort(409, description='Only edit sessions load a role')
    editing.load_role(get_directory(bearer_token()))
    return _session_view(editing)


def _created_role_id(result):
    for key in ('role', 'data'):
        nested = result.get(key)
        if isinstance(nested, dict) and nested.get('id') is not None:
            return str(nested['id'])
    return str(result['id']) if result.get('id') is not None else None


@editor_bp.post('/sessions/<session_id>/submit')
@require_permissions(PERM_ROLE_MANAGE)
@editor_session
@audit_log(
    lambda data: AUDIT_ROLE_UPDATE if data.get('mode') == 'edit' else AUDIT_ROLE_CREATE,
    entity='Role',
    entity_id_key='id',
    meta_builder=lambda data, rv, a, kw: {'session_id': data.get('session_id'), 'payload': data.get('payload')},
)
def submit(editing):
    blocker = editing.begin_submit()
    if blocker:
        abort(409, description=blocker)
    try:
        fields, state, catalog = editing.snapshot()
        fields = validate_role_fields(fields)
        payload = build_role_payload(
            fields, state, catalog,
            include_branch=editing.mode == 'create',
            strict=current_app.config['STRICT_SELECTION'],
        )
        directory = get_directory(bearer_token())
        if editing.mode == 'edit':
            result = directory.update_role(editing.role_id, payload, fields.get('branch_id'))
            role_id, status = editing.role_id, 200
            default_message = f'Role "{payload["name"]}" updated successfully!'
        else:
            result = directory.create_role(payload)
            role_id, status = _created_role_id(result), 201
            default_message = f'Role "{payload["name"]}" created successfully!'
    except DirectoryError as e:
        # session stays open for a retry
        editing.notify('error', NOTICE_SUBMIT_FAILED, e.message)
        editing.end_submit()
        raise
    except Exception:
        editing.end_submit()
        raise
    get_sessions().close(editing.id)
    current_app.logger.info('Submitted %s session %s for role %s', editing.mode, editing.id, role_id)
    return {
        'id': role_id,
        'mode': editing.mode,
        'session_id': editing.id,
        'payload': payload,
        'message': result.get('message') or default_message,
    }, status
