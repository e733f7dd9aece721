"""Role editing sessions.

One EditorSession per open create/edit dialog. It owns the fetched catalog, the
role fields, the SelectionState and its notices (the session-scoped replacement
for a global page-toast tracker). Sessions live in a process-local registry
keyed by id and are evicted after EDITOR_SESSION_TTL seconds of inactivity.
"""
from __future__ import annotations
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from role_composer.constants.roles import DEFAULT_SCOPE_LEVEL
from role_composer.models.catalog import Catalog, EMPTY_CATALOG
from role_composer.services.directory import DirectoryError, RoleDirectoryClient
from role_composer.services.hydrator import fields_from_role, hydrate_role
from role_composer.services.selection import SelectionState
from role_composer.services.serializer import empty_selected_groups

logger = logging.getLogger(__name__)

NOTICE_CATALOG_UNAVAILABLE = 'catalog.unavailable'
NOTICE_ROLE_UNAVAILABLE = 'role.unavailable'
NOTICE_GROUP_EMPTY = 'group.empty'

DEFAULT_TTL = 1800


@dataclass(frozen=True)
class Notice:
    level: str
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'level': self.level, 'code': self.code, 'message': self.message}


class EditorSession:
    def __init__(self, owner: str, role_id: Optional[str] = None, branch_id: Optional[str] = None):
        self.id = uuid.uuid4().hex
        self.owner = owner
        self.role_id = role_id
        self.mode = 'edit' if role_id else 'create'
        self.fields: Dict[str, Any] = {
            'name': '',
            'description': '',
            'scope_level': DEFAULT_SCOPE_LEVEL,
            'branch_id': branch_id,
        }
        self.catalog: Catalog = EMPTY_CATALOG
        self.catalog_loaded = False
        # nothing to hydrate in create mode
        self.role_loaded = role_id is None
        self.state = SelectionState()
        self.closed = False
        self.submitting = False
        self.lock = threading.RLock()
        self.touched_at = time.monotonic()
        self._notices: List[Notice] = []

    # --- notices ---
    def notify(self, level: str, code: str, message: str):
        with self.lock:
            self._notices = [n for n in self._notices if n.code != code]
            self._notices.append(Notice(level, code, message))

    def clear_notice(self, code: str):
        with self.lock:
            self._notices = [n for n in self._notices if n.code != code]

    def notices(self) -> List[Notice]:
        with self.lock:
            out = list(self._notices)
            for gid in empty_selected_groups(self.state, self.catalog):
                grp = self.catalog.group(gid)
                label = grp.name if grp else gid
                out.append(Notice('warning', NOTICE_GROUP_EMPTY, f'Group "{label}" is selected with no permissions checked'))
            return out

    def touch(self):
        self.touched_at = time.monotonic()

    # --- fetches ---
    def load_catalog(self, directory: RoleDirectoryClient) -> bool:
        try:
            catalog = directory.list_permission_groups()
        except DirectoryError as e:
            if self.closed:
                return False
            with self.lock:
                self.catalog = EMPTY_CATALOG
                self.catalog_loaded = False
            self.notify('error', NOTICE_CATALOG_UNAVAILABLE, e.message)
            return False
        if self.closed:
            logger.debug('Discarding catalog for closed session %s', self.id)
            return False
        with self.lock:
            self.catalog = catalog
            self.catalog_loaded = True
        self.clear_notice(NOTICE_CATALOG_UNAVAILABLE)
        return True

    def load_role(self, directory: RoleDirectoryClient) -> bool:
        if self.role_id is None:
            return True
        try:
            role = directory.get_role(self.role_id)
        except DirectoryError as e:
            if self.closed:
                return False
            with self.lock:
                self.state = SelectionState()
                self.role_loaded = False
            # must not read as "role has no permissions"
            self.notify('error', NOTICE_ROLE_UNAVAILABLE, f'{e.message}. Reload before saving.')
            return False
        if self.closed:
            logger.debug('Discarding role %s for closed session %s', self.role_id, self.id)
            return False
        with self.lock:
            branch_id = self.fields.get('branch_id')
            self.fields = dict(fields_from_role(role), branch_id=branch_id)
            self.state = hydrate_role(role)
            self.role_loaded = True
        self.clear_notice(NOTICE_ROLE_UNAVAILABLE)
        return True

    # --- submission ---
    def submit_blocker(self) -> Optional[str]:
        with self.lock:
            if self.closed:
                return 'Editing session is closed'
            if self.submitting:
                return 'Submission already in progress'
            if not self.catalog_loaded:
                return 'Permission groups are not loaded'
            if not self.role_loaded:
                return 'Role permissions are not loaded'
            if not self.state.selected_groups:
                return 'Select at least one permission group'
        return None

    def begin_submit(self) -> Optional[str]:
        """Mark the session in flight; returns a blocker instead when it cannot submit."""
        with self.lock:
            blocker = self.submit_blocker()
            if blocker is None:
                self.submitting = True
            return blocker

    def end_submit(self):
        with self.lock:
            self.submitting = False

    def snapshot(self) -> Tuple[Dict[str, Any], SelectionState, Catalog]:
        """Fields, selection and catalog taken together under the session lock."""
        with self.lock:
            return dict(self.fields), self.state.snapshot(), self.catalog


class SessionRegistry:
    def __init__(self, ttl: int = DEFAULT_TTL):
        self.ttl = ttl
        self._sessions: Dict[str, EditorSession] = {}
        self._lock = threading.Lock()

    def open(self, owner: str, role_id: Optional[str] = None, branch_id: Optional[str] = None) -> EditorSession:
        session = EditorSession(owner, role_id=role_id, branch_id=branch_id)
        with self._lock:
            self._evict_expired()
            self._sessions[session.id] = session
        logger.info('Opened %s session %s for user %s', session.mode, session.id, owner)
        return session

    def get(self, session_id: str, owner: Optional[str] = None) -> Optional[EditorSession]:
        with self._lock:
            self._evict_expired()
            session = self._sessions.get(session_id)
        if session is None or (owner is not None and session.owner != owner):
            return None
        session.touch()
        return session

    def close(self, session_id: str) -> Optional[EditorSession]:
        with self._lock:
            session = self._sessions.pop(session_id, None)
        if session is not None:
            session.closed = True
            logger.info('Closed session %s', session_id)
        return session

    def _evict_expired(self):
        cutoff = time.monotonic() - self.ttl
        for sid in [sid for sid, s in self._sessions.items() if s.touched_at < cutoff]:
            self._sessions.pop(sid).closed = True
            logger.info('Evicted idle session %s', sid)

    def __len__(self) -> int:
        return len(self._sessions)


def get_sessions() -> SessionRegistry:
    return current_app.extensions['editor_sessions']


__all__ = ['Notice', 'EditorSession', 'SessionRegistry', 'get_sessions']
