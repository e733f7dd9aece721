"""Selection state for role composition and its tri-state projection.

Two loosely coupled collections are kept on purpose:

    selected_groups      groups the operator turned on (insertion ordered)
    checked_permissions  permission ids currently checked

Checking a permission opts its group in; unchecking never opts it out. A group
can therefore be selected with nothing checked, and (only through direct
construction) a permission can be checked under a group that is not selected.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from role_composer.models.catalog import Catalog


@dataclass
class SelectionState:
    selected_groups: List[str] = field(default_factory=list)
    checked_permissions: Set[str] = field(default_factory=set)

    def is_group_selected(self, group_id: str) -> bool:
        return group_id in self.selected_groups

    def _select_group(self, group_id: str):
        if group_id not in self.selected_groups:
            self.selected_groups.append(group_id)

    def toggle_group(self, catalog: Catalog, group_id: str, on: bool) -> 'SelectionState':
        """Bulk select / clear a whole group."""
        perm_ids = catalog.group_permission_ids(group_id)
        if on:
            self._select_group(group_id)
            self.checked_permissions.update(perm_ids)
        else:
            if group_id in self.selected_groups:
                self.selected_groups.remove(group_id)
            self.checked_permissions.difference_update(perm_ids)
        return self

    def toggle_permission(self, catalog: Catalog, permission_id: str, on: bool) -> 'SelectionState':
        if on:
            self.checked_permissions.add(permission_id)
            owner = catalog.owning_group_id(permission_id)
            if owner is not None:
                self._select_group(owner)
        else:
            self.checked_permissions.discard(permission_id)
        return self

    def select_all_in_group(self, catalog: Catalog, group_id: str) -> 'SelectionState':
        self.checked_permissions.update(catalog.group_permission_ids(group_id))
        return self

    def deselect_all_in_group(self, catalog: Catalog, group_id: str) -> 'SelectionState':
        self.checked_permissions.difference_update(catalog.group_permission_ids(group_id))
        return self

    def snapshot(self) -> 'SelectionState':
        return SelectionState(list(self.selected_groups), set(self.checked_permissions))

    def to_dict(self) -> Dict[str, list]:
        return {
            'selected_groups': list(self.selected_groups),
            'checked_permissions': sorted(self.checked_permissions),
        }


# --- Derived coverage ---

def checked_in_group(state: SelectionState, catalog: Catalog, group_id: str) -> List[str]:
    """Checked permission ids of the group, in catalog order."""
    return [pid for pid in catalog.group_permission_ids(group_id) if pid in state.checked_permissions]


def is_fully_checked(state: SelectionState, catalog: Catalog, group_id: str) -> bool:
    # an orphan group's permissions are unknown, so it is never complete
    if catalog.group(group_id) is None:
        return False
    return all(pid in state.checked_permissions for pid in catalog.group_permission_ids(group_id))


def is_partially_checked(state: SelectionState, catalog: Catalog, group_id: str) -> bool:
    if catalog.group(group_id) is None:
        # orphan group: its own permission ids are unknown, so any stale id still checked counts
        return any(catalog.permission(pid) is None for pid in state.checked_permissions)
    return bool(checked_in_group(state, catalog, group_id)) and not is_fully_checked(state, catalog, group_id)


# --- Tri-state projection ---

@dataclass(frozen=True)
class GroupView:
    id: str
    name: str
    description: str
    checked: bool
    indeterminate: bool
    fully_checked: bool
    partially_checked: bool
    bulk_actions: bool
    permissions: List[Dict[str, object]]

    def to_dict(self) -> Dict[str, object]:
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'checked': self.checked,
            'indeterminate': self.indeterminate,
            'fully_checked': self.fully_checked,
            'partially_checked': self.partially_checked,
            'bulk_actions': self.bulk_actions,
            'permissions': self.permissions,
        }


def project_group(state: SelectionState, catalog: Catalog, group_id: str) -> Optional[GroupView]:
    grp = catalog.group(group_id)
    if grp is None:
        return None
    selected = state.is_group_selected(grp.id)
    checked = checked_in_group(state, catalog, grp.id)
    return GroupView(
        id=grp.id,
        name=grp.name,
        description=grp.description,
        # explicit selection, not coverage
        checked=selected,
        # only reachable from externally built state
        indeterminate=not selected and bool(checked),
        fully_checked=is_fully_checked(state, catalog, grp.id),
        partially_checked=is_partially_checked(state, catalog, grp.id),
        bulk_actions=selected and len(grp.permissions) > 1,
        permissions=[
            {'id': p.id, 'name': p.name, 'checked': p.id in state.checked_permissions}
            for p in grp.permissions
        ],
    )


def project_groups(state: SelectionState, catalog: Catalog) -> List[GroupView]:
    return [project_group(state, catalog, grp.id) for grp in catalog]


def orphan_group_ids(state: SelectionState, catalog: Catalog) -> List[str]:
    return [gid for gid in state.selected_groups if catalog.group(gid) is None]


__all__ = [
    'SelectionState', 'GroupView', 'checked_in_group', 'is_fully_checked', 'is_partially_checked',
    'project_group', 'project_groups', 'orphan_group_ids',
]
