"""
auth/tokens.py -- Bearer token issuance, verification and the auth cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with JWT_SECRET and carry
       user_id, username (sub), role, iat and exp. Nothing is stored server
       side: any process holding the secret can verify any token, and the
       only way a token stops working is its exp claim.

  Verification runs three checks in a fixed order -- structure, integrity,
       freshness -- and reports which one failed as a TokenFailure reason.
       The reason is for logs and tests; every failure looks identical to the
       client (see auth/errors.py).

  Time is injectable: issue and verify both accept `now` (unix seconds) so
       expiry behaviour is testable without sleeping or patching the clock.
       jose's own exp check is disabled for the same reason; freshness is
       checked here against `now`.

  SECRET: sourced from core.config.get_settings() once at module load.

Layer rule: no imports from api/ or directory/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from jose import JWTError, jwt
from jose.utils import base64url_decode, base64url_encode

from auth.errors import ExpiredToken, IssuanceError, MalformedToken, TamperedToken, TokenError
from auth.models import Identity, Role
from core.config import get_settings

logger = logging.getLogger("advocates.auth")

_settings = get_settings()

_ALGORITHM = "HS256"

_REQUIRED_CLAIMS = ("sub", "user_id", "role", "iat", "exp")


class TokenFailure(str, Enum):
    MALFORMED = "malformed"
    TAMPERED = "tampered"
    EXPIRED = "expired"


@dataclass(frozen=True)
class TokenVerification:
    """Outcome of verify_access_token(). identity is set only when valid."""

    valid: bool
    identity: Identity | None = None
    reason: TokenFailure | None = None


_FAILURE_REASONS: dict[type[TokenError], TokenFailure] = {
    MalformedToken: TokenFailure.MALFORMED,
    TamperedToken: TokenFailure.TAMPERED,
    ExpiredToken: TokenFailure.EXPIRED,
}


def _now(now: float | None) -> int:
    return int(time.time() if now is None else now)


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------


def create_access_token(identity: Identity, now: float | None = None) -> str:
    """Encode a signed JWT for the given identity.

    exp = now + the configured TTL (JWT_EXPIRES_IN, default 24h).
    Raises IssuanceError if the identity is missing a user id, a username,
    or a known role.
    """
    if identity is None:
        raise IssuanceError("identity is required")
    if not isinstance(identity.user_id, int) or isinstance(identity.user_id, bool):
        raise IssuanceError("identity.user_id must be an integer")
    if not identity.username:
        raise IssuanceError("identity.username is required")
    try:
        role = Role(identity.role)
    except ValueError as exc:
        raise IssuanceError(f"unknown role {identity.role!r}") from exc

    issued_at = _now(now)
    payload = {
        "sub": identity.username,
        "user_id": identity.user_id,
        "role": role.value,
        "iat": issued_at,
        "exp": issued_at + _settings.token_ttl_seconds,
    }
    return jwt.encode(payload, _settings.jwt_secret, algorithm=_ALGORITHM)


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------


def _identity_from_claims(claims: dict) -> Identity:
    """Check claim presence and types; raise MalformedToken on any mismatch."""
    if any(name not in claims for name in _REQUIRED_CLAIMS):
        raise MalformedToken()
    user_id = claims["user_id"]
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise MalformedToken()
    if not isinstance(claims["sub"], str) or not claims["sub"]:
        raise MalformedToken()
    if not all(isinstance(claims[k], int) for k in ("iat", "exp")):
        raise MalformedToken()
    try:
        role = Role(claims["role"])
    except ValueError as exc:
        raise MalformedToken() from exc
    return Identity(user_id=user_id, username=claims["sub"], role=role)


def _check_segments(token: str) -> None:
    """Require exactly three canonical base64url segments.

    A decoder ignores the spare low bits of a segment's last character, so
    several spellings can decode to the same bytes. Only the spelling the
    encoder produces is accepted; any other is an altered token.
    """
    segments = token.split(".")
    if len(segments) != 3:
        raise MalformedToken()
    for segment in segments:
        try:
            raw = segment.encode("ascii")
            canonical = base64url_encode(base64url_decode(raw))
        except ValueError as exc:
            raise MalformedToken() from exc
        if canonical != raw:
            raise MalformedToken()


def decode_access_token(token: str, now: float | None = None) -> Identity:
    """Verify a JWT and return the identity it carries.

    Raises:
        MalformedToken -- not three canonical base64url segments, or claims missing/ill-typed.
        TamperedToken  -- signature does not match the payload under our secret.
        ExpiredToken   -- exp is earlier than `now`.
    """
    if not token or not isinstance(token, str):
        raise MalformedToken()

    # 1. Structure
    _check_segments(token)
    try:
        unverified = jwt.get_unverified_claims(token)
    except JWTError as exc:
        raise MalformedToken() from exc
    _identity_from_claims(unverified)

    # 2. Integrity
    try:
        claims = jwt.decode(
            token,
            _settings.jwt_secret,
            algorithms=[_ALGORITHM],
            options={"verify_exp": False},
        )
    except JWTError as exc:
        raise TamperedToken() from exc
    identity = _identity_from_claims(claims)

    # 3. Freshness
    if claims["exp"] < _now(now):
        raise ExpiredToken()
    return identity


def verify_access_token(token: str, now: float | None = None) -> TokenVerification:
    """Result-returning wrapper around decode_access_token(). Never raises."""
    try:
        identity = decode_access_token(token, now)
    except TokenError as exc:
        reason = _FAILURE_REASONS[type(exc)]
        logger.debug("Token rejected: %s", reason.value)
        return TokenVerification(valid=False, reason=reason)
    return TokenVerification(valid=True, identity=identity)


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the bearer token as the auth cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite="lax": not sent on cross-site POST -- CSRF mitigation.
    secure: only in production (APP_ENV=production), where we serve HTTPS.
    max_age: matches the token TTL so cookie and token expire together.
    """
    response.set_cookie(
        _settings.cookie_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
        max_age=_settings.token_ttl_seconds,
        path="/",
    )


def clear_auth_cookie(response) -> None:
    """Expire the auth cookie. The token string itself stays valid until exp."""
    response.delete_cookie(
        _settings.cookie_name,
        path="/",
        httponly=True,
        samesite="lax",
        secure=_settings.secure_cookies,
    )
