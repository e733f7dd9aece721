"""Role field constraints and the permission codes guarding the editor.
Values mirror what the Role Directory accepts; keep them in sync with it.
"""
from __future__ import annotations

SCOPE_LEVELS = ['church', 'branch', 'department', 'unit']
DEFAULT_SCOPE_LEVEL = 'church'

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 256

# JWT `perms` claim codes
PERM_ROLE_MANAGE = 'ADMIN.ROLE.MANAGE'
PERM_SETTINGS_MANAGE = 'ADMIN.SETTINGS.MANAGE'

# Audit action codes
AUDIT_ROLE_CREATE = 'ROLE.CREATE'
AUDIT_ROLE_UPDATE = 'ROLE.UPDATE'
