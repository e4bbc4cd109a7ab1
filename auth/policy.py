"""
auth/policy.py -- Static permission table: resource -> action -> roles.

The table is built once at import and never mutated. Every gated route names
its (resource, action) pair and looks the permitted roles up here, so route
code never hard-codes a role check.

Anything the table does not name -- an unknown resource or an action outside
ACTIONS -- maps to the empty role set, which the gate treats as
deny-all. The rows themselves are checked at import: each resource must grant
every one of ACTIONS explicitly, so adding an action means deciding it for
every resource.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

from auth.models import Identity, Role

ACTIONS: tuple[str, ...] = ("read", "create", "update", "delete")

_ADMIN_ONLY = frozenset({Role.ADMIN})
_ANY_ROLE = frozenset({Role.ADMIN, Role.USER})


def _grants(**roles_by_action: frozenset[Role]) -> Mapping[str, frozenset[Role]]:
    """Freeze one resource's row. A row must name each of ACTIONS, no more and no fewer."""
    if set(roles_by_action) != set(ACTIONS):
        raise ValueError(f"Permission row must define exactly {ACTIONS}, got {sorted(roles_by_action)}")
    return MappingProxyType({action: roles_by_action[action] for action in ACTIONS})


PERMISSIONS = MappingProxyType(
    {
        "advocates": _grants(read=_ANY_ROLE, create=_ADMIN_ONLY, update=_ADMIN_ONLY, delete=_ADMIN_ONLY),
        "users": _grants(read=_ADMIN_ONLY, create=_ADMIN_ONLY, update=_ADMIN_ONLY, delete=_ADMIN_ONLY),
    }
)


def required_roles(resource: str, action: str) -> frozenset[Role]:
    """Return the roles allowed to perform `action` on `resource` (empty = nobody)."""
    return PERMISSIONS.get(resource, {}).get(action, frozenset())


def check_role(identity: Identity | None, allowed: Iterable[Role]) -> bool:
    """True if the identity holds one of the allowed roles."""
    if identity is None:
        return False
    return identity.role in set(allowed)
