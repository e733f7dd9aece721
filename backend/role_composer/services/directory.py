"""HTTP client for the Role Directory Service (permission catalog + role CRUD).

Usage:
    client = get_directory(token)
    catalog = client.list_permission_groups()
    role = client.get_role(role_id)
    client.create_role(payload) / client.update_role(role_id, payload, branch_id)

Every failure (transport or non-2xx) surfaces as DirectoryError with the
upstream message when one is present.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import requests
from flask import current_app

from role_composer.models.catalog import Catalog

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class DirectoryError(Exception):
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


def _upstream_message(resp: requests.Response, default: str) -> str:
    try:
        body = resp.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default
    err = body.get('error')
    if isinstance(err, dict) and err.get('message'):
        return err['message']
    return body.get('message') or default


class RoleDirectoryClient:
    def __init__(self, base_url: str, token: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})
        if token:
            self.session.headers['Authorization'] = f'Bearer {token}'

    def _request(self, method: str, path: str, default_error: str, **kwargs) -> Dict[str, Any]:
        url = f'{self.base_url}{path}'
        try:
            resp = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.warning('Role directory %s %s failed: %s', method, path, e)
            raise DirectoryError(default_error) from e
        if resp.status_code >= 400:
            message = _upstream_message(resp, default_error)
            logger.warning('Role directory %s %s -> %s: %s', method, path, resp.status_code, message)
            raise DirectoryError(message, resp.status_code)
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as e:
            raise DirectoryError(default_error, resp.status_code) from e

    def list_permission_groups(self) -> Catalog:
        body = self._request('GET', '/tenants/permission-groups', 'Failed to load permission groups')
        return Catalog.from_wire(body.get('data') or [])

    def get_role(self, role_id: str) -> Dict[str, Any]:
        body = self._request('GET', f'/tenants/get-role/{role_id}', 'Failed to load role permissions')
        role = body.get('role')
        if not isinstance(role, dict):
            raise DirectoryError('Failed to load role permissions')
        return role

    def create_role(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._request('POST', '/tenants/create-role', 'Failed to create role', json=payload)

    def update_role(self, role_id: str, payload: Dict[str, Any], branch_id: Optional[str] = None) -> Dict[str, Any]:
        params = {'branchId': branch_id} if branch_id else None
        return self._request('PATCH', f'/tenants/edit-role/{role_id}', 'Failed to update role',
                             json=payload, params=params)


def get_directory(token: Optional[str] = None) -> RoleDirectoryClient:
    return RoleDirectoryClient(
        current_app.config['ROLE_DIRECTORY_URL'],
        token=token,
        timeout=float(current_app.config.get('ROLE_DIRECTORY_TIMEOUT', DEFAULT_TIMEOUT)),
    )


__all__ = ['DirectoryError', 'RoleDirectoryClient', 'get_directory']
