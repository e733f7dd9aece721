"""Role field validation with consistent 400 error semantics.

Rules follow the role dialog: name 2-50 characters after trimming, description
at most 256 characters, scope level from the fixed set.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable
from flask import abort

from role_composer.constants.roles import (
    SCOPE_LEVELS, NAME_MIN_LENGTH, NAME_MAX_LENGTH, DESCRIPTION_MAX_LENGTH,
)


def validate_choice(value: str, allowed: Iterable[str], field_name: str) -> str:
    if value not in allowed:
        abort(400, description=f"{field_name} invalid")
    return value


def validate_role_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Abort 400 with the first failing rule; return the fields with name/description trimmed."""
    for key in ('name', 'description'):
        if fields.get(key) is not None and not isinstance(fields[key], str):
            abort(400, description=f'{key} must be a string')
    name = (fields.get('name') or '').strip()
    if not name:
        abort(400, description='Role name is required')
    if len(name) < NAME_MIN_LENGTH:
        abort(400, description=f'Name must be at least {NAME_MIN_LENGTH} characters')
    if len(name) > NAME_MAX_LENGTH:
        abort(400, description=f'Name must be less than {NAME_MAX_LENGTH} characters')
    description = (fields.get('description') or '').strip()
    if len(description) > DESCRIPTION_MAX_LENGTH:
        abort(400, description=f'Description must be at most {DESCRIPTION_MAX_LENGTH} characters')
    validate_choice(fields.get('scope_level'), SCOPE_LEVELS, 'scopeLevel')
    return dict(fields, name=name, description=description)

__all__ = ['validate_choice', 'validate_role_fields']
