"""
auth/gate.py -- The access decision: (bearer token, required roles) -> Decision.

Each call walks one request through a fixed sequence and stops at the first
terminal state:

    no token                      -> DENY  (UNAUTHENTICATED)
    token fails verification      -> DENY  (UNAUTHENTICATED)
    valid, role not in required   -> DENY  (FORBIDDEN)
    valid, role in required       -> ALLOW (identity)

The gate is a pure function of its inputs plus the signing secret. It does
not touch the credential store and does not know about HTTP; see
auth/dependencies.py for the FastAPI boundary.

It answers "may this role act here", nothing more. Data-dependent rules such
as "never delete the last admin" live in auth/users.py.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from auth.models import Identity, Role
from auth.policy import check_role, required_roles
from auth.tokens import TokenFailure, verify_access_token


class Outcome(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


class DenyKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    identity: Identity | None = None
    kind: DenyKind | None = None
    # Set only for UNAUTHENTICATED denials of a presented token.
    reason: TokenFailure | None = None
    required: frozenset[Role] = frozenset()

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


def authorize(token: str | None, roles: Iterable[Role], now: float | None = None) -> Decision:
    """Decide whether the bearer of `token` may act with one of `roles`.

    An empty role set denies every caller, authenticated or not.
    """
    required = frozenset(roles)
    if not token:
        return Decision(Outcome.DENY, kind=DenyKind.UNAUTHENTICATED, required=required)

    result = verify_access_token(token, now)
    if not result.valid:
        return Decision(Outcome.DENY, kind=DenyKind.UNAUTHENTICATED, reason=result.reason, required=required)

    if not check_role(result.identity, required):
        return Decision(Outcome.DENY, identity=result.identity, kind=DenyKind.FORBIDDEN, required=required)
    return Decision(Outcome.ALLOW, identity=result.identity, required=required)


def authorize_action(token: str | None, resource: str, action: str, now: float | None = None) -> Decision:
    """authorize() with the role set taken from the permission table."""
    return authorize(token, required_roles(resource, action), now)
