from __future__ import annotations
from typing import Optional, Set
from flask import request
from flask_jwt_extended import get_jwt, get_jwt_identity


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def has_permissions(*codes: str) -> bool:
    perms = current_permissions()
    return all(c in perms for c in codes)


def current_user_id() -> str:
    # Identity is a string (flask-jwt-extended v4 requirement)
    return str(get_jwt_identity())


def bearer_token() -> Optional[str]:
    """Raw bearer token of the current request, forwarded to the Role Directory."""
    header = request.headers.get('Authorization', '')
    if header.lower().startswith('bearer '):
        return header[7:].strip() or None
    return None
