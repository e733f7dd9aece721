"""Permission catalog as supplied by the Role Directory for one editing session.

Groups and permissions are immutable value objects; the catalog keeps both the
ordered group list (render order) and lookup indexes by id.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class Permission:
    id: str
    name: str
    group_id: str


@dataclass(frozen=True)
class PermissionGroup:
    id: str
    name: str
    description: str = ''
    permissions: Tuple[Permission, ...] = ()

    @property
    def permission_ids(self) -> List[str]:
        return [p.id for p in self.permissions]


@dataclass
class Catalog:
    groups: List[PermissionGroup] = field(default_factory=list)

    def __post_init__(self):
        self._groups: Dict[str, PermissionGroup] = {g.id: g for g in self.groups}
        self._permissions: Dict[str, Permission] = {
            p.id: p for g in self.groups for p in g.permissions
        }

    @classmethod
    def from_wire(cls, rows: Iterable[Dict[str, Any]]) -> 'Catalog':
        """Build from the `/tenants/permission-groups` `data` array.

        Permissions on the wire carry no group reference; ownership comes from nesting.
        """
        groups = []
        for row in rows or []:
            gid = str(row['id'])
            perms = tuple(
                Permission(id=str(p['id']), name=p.get('name') or '', group_id=gid)
                for p in row.get('permissions') or []
            )
            groups.append(PermissionGroup(
                id=gid,
                name=row.get('name') or '',
                description=row.get('description') or '',
                permissions=perms,
            ))
        return cls(groups)

    def group(self, group_id: str) -> Optional[PermissionGroup]:
        return self._groups.get(group_id)

    def permission(self, permission_id: str) -> Optional[Permission]:
        return self._permissions.get(permission_id)

    def group_permission_ids(self, group_id: str) -> List[str]:
        # Unknown (orphan) groups own nothing
        grp = self._groups.get(group_id)
        return grp.permission_ids if grp else []

    def owning_group_id(self, permission_id: str) -> Optional[str]:
        perm = self._permissions.get(permission_id)
        return perm.group_id if perm else None

    def __len__(self) -> int:
        return len(self.groups)

    def __iter__(self):
        return iter(self.groups)


EMPTY_CATALOG = Catalog()

__all__ = ['Permission', 'PermissionGroup', 'Catalog', 'EMPTY_CATALOG']
