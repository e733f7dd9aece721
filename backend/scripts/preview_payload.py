#!/usr/bin/env python
"""Compute the minimal role payload offline from exported JSON.

Usage:
    python backend/scripts/preview_payload.py --catalog groups.json --role role.json
    python backend/scripts/preview_payload.py --catalog groups.json --role role.json --views
    python backend/scripts/preview_payload.py --catalog groups.json --role role.json --strict

Inputs:
  --catalog  `/tenants/permission-groups` response (object with `data`, or the bare array)
  --role     `/tenants/get-role/{id}` response (object with `role`, or the role itself)

Exit Codes:
  0 success
  2 unreadable input
  3 checked permissions outside selected groups (--strict only)
"""
from __future__ import annotations
import argparse, json, os, sys

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from role_composer.models.catalog import Catalog  # noqa: E402
from role_composer.services.hydrator import hydrate_role  # noqa: E402
from role_composer.services.selection import project_groups  # noqa: E402
from role_composer.services.serializer import SelectionConsistencyError, serialize_selection  # noqa: E402


def load_json(path: str):
    with open(path, encoding='utf-8') as fh:
        return json.load(fh)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description='Preview the minimal role permission payload')
    p.add_argument('--catalog', required=True, metavar='FILE', help='Permission groups JSON')
    p.add_argument('--role', required=True, metavar='FILE', help='Role JSON with permissionGroups / permissions')
    p.add_argument('--strict', action='store_true', help='Fail when checked permissions sit outside selected groups')
    p.add_argument('--views', action='store_true', help='Also print the per-group tri-state view')
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        raw_catalog = load_json(args.catalog)
        raw_role = load_json(args.role)
    except (OSError, ValueError) as e:
        print(f'[ERROR] {e}', file=sys.stderr)
        return 2
    rows = raw_catalog.get('data', []) if isinstance(raw_catalog, dict) else raw_catalog
    role = raw_role.get('role', raw_role) if isinstance(raw_role, dict) else {}
    catalog = Catalog.from_wire(rows)
    state = hydrate_role(role)
    try:
        payload = serialize_selection(state, catalog, strict=args.strict)
    except SelectionConsistencyError as e:
        print(f'[ERROR] {e}', file=sys.stderr)
        return 3
    out = {'payload': payload}
    if args.views:
        out['groups'] = [v.to_dict() for v in project_groups(state, catalog)]
    print(json.dumps(out, indent=2))
    return 0


if __name__ == '__main__':
    sys.exit(main())
