"""Minimal role payload encoding.

Selected groups are always sent by id. Explicit permission ids are only sent for
selected groups that are not fully checked; a fully checked group is implied by
its id. Checked permissions whose group is not selected are never sent.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from role_composer.models.catalog import Catalog
from role_composer.services.selection import SelectionState, checked_in_group, is_fully_checked

logger = logging.getLogger(__name__)


class SelectionConsistencyError(ValueError):
    """Raised in strict mode when checked permissions sit outside every selected group."""

    def __init__(self, permission_ids: List[str]):
        self.permission_ids = permission_ids
        super().__init__(f'Checked permissions outside selected groups: {permission_ids}')


def unreachable_permissions(state: SelectionState, catalog: Catalog) -> List[str]:
    reachable = set()
    for gid in state.selected_groups:
        reachable.update(catalog.group_permission_ids(gid))
    return sorted(pid for pid in state.checked_permissions if pid not in reachable)


def empty_selected_groups(state: SelectionState, catalog: Catalog) -> List[str]:
    return [gid for gid in state.selected_groups if not checked_in_group(state, catalog, gid)]


def serialize_selection(state: SelectionState, catalog: Catalog, strict: bool = False) -> Dict[str, List[str]]:
    payload: Dict[str, List[str]] = {}
    if state.selected_groups:
        payload['permissionGroup'] = list(state.selected_groups)
    permissions: List[str] = []
    for gid in state.selected_groups:
        if is_fully_checked(state, catalog, gid):
            continue
        # partial, including nothing checked
        permissions.extend(checked_in_group(state, catalog, gid))
    if permissions:
        payload['permissions'] = permissions
    dropped = unreachable_permissions(state, catalog)
    if dropped:
        if strict:
            raise SelectionConsistencyError(dropped)
        logger.warning('Dropping %d checked permission(s) without a selected group: %s', len(dropped), dropped)
    return payload


def build_role_payload(
    fields: Dict[str, Any],
    state: SelectionState,
    catalog: Catalog,
    *,
    include_branch: bool = True,
    strict: bool = False,
) -> Dict[str, Any]:
    """Role create/update body: role fields followed by the selection-derived fields."""
    payload: Dict[str, Any] = {
        'name': (fields.get('name') or '').strip(),
        'scopeLevel': fields.get('scope_level') or 'church',
    }
    description: Optional[str] = (fields.get('description') or '').strip()
    if description:
        payload['description'] = description
    if include_branch and fields.get('branch_id'):
        payload['branchId'] = fields['branch_id']
    payload.update(serialize_selection(state, catalog, strict=strict))
    return payload


__all__ = [
    'SelectionConsistencyError', 'serialize_selection', 'build_role_payload',
    'unreachable_permissions', 'empty_selected_groups',
]
