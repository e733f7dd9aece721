from __future__ import annotations
from typing import Any, Dict, Iterable

from role_composer.constants.roles import DEFAULT_SCOPE_LEVEL
from role_composer.services.selection import SelectionState


def _ids(items: Iterable[Any]):
    # Accept bare ids or wire objects carrying an `id`
    for item in items or []:
        yield str(item['id']) if isinstance(item, dict) else str(item)


def hydrate_selection(permission_groups: Iterable[Any], permissions: Iterable[Any]) -> SelectionState:
    """Seed selection from a persisted role.

    No reconciliation against the catalog: ids the catalog no longer knows are
    carried as they are until a toggle touches their group.
    """
    state = SelectionState()
    for gid in _ids(permission_groups):
        if gid not in state.selected_groups:
            state.selected_groups.append(gid)
    state.checked_permissions = set(_ids(permissions))
    return state


def fields_from_role(role: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'name': role.get('name') or '',
        'description': role.get('description') or '',
        'scope_level': role.get('scopeLevel') or DEFAULT_SCOPE_LEVEL,
    }


def hydrate_role(role: Dict[str, Any]) -> SelectionState:
    return hydrate_selection(role.get('permissionGroups') or [], role.get('permissions') or [])
