"""
auth/tokens.py -- JWT issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Access tokens carry userId, tenantId,
       locationId, role and email; refresh tokens carry only userId and
       tenantId, so a future refresh exchange must re-read the current role
       instead of trusting a stale one.

  Expiry: jose's own exp check is disabled and replaced by an explicit
       comparison against an injectable clock. A token is rejected AT its
       expiry instant, not one second later, and verification stays a pure
       function of (token, secret, now).

  Secret: the codec refuses to exist without one. TokenCodec is built once in
       the app lifespan, so a missing secret stops the process at startup
       rather than surfacing on the first login.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from auth.exceptions import TokenInvalid
from auth.models import TokenClaims, TokenPair
from core.config import ConfigError

_ALGORITHM = "HS256"
_TIMESTAMP_CLAIMS = ("iat", "exp")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenCodec:
    """Sign claim sets into bearer tokens and verify them back.

    Usage:
        codec = TokenCodec(settings.jwt_secret)
        token = codec.issue({"userId": "u1"}, timedelta(hours=1))
        codec.verify(token)  # -> {"userId": "u1"}
    """

    def __init__(self, secret: str, now: Callable[[], datetime] = _utcnow) -> None:
        if not secret:
            raise ConfigError("JWT signing secret is not configured.")
        self._secret = secret
        self._now = now

    def issue(self, claims: dict, expires_in: timedelta) -> str:
        """Encode claims plus iat/exp (epoch seconds) into a signed token."""
        issued_at = int(self._now().timestamp())
        payload = dict(claims)
        payload["iat"] = issued_at
        payload["exp"] = issued_at + int(expires_in.total_seconds())
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def verify(self, token: str) -> dict:
        """Return the claim set embedded at issuance, without iat/exp.

        Raises TokenInvalid on a bad signature, a malformed token, a missing
        or non-numeric exp, or when the clock is at or past exp.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            raise TokenInvalid() from exc

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise TokenInvalid()
        if self._now().timestamp() >= exp:
            raise TokenInvalid()

        return {k: v for k, v in payload.items() if k not in _TIMESTAMP_CLAIMS}

    def issue_pair(self, claims: TokenClaims, access_ttl: timedelta, refresh_ttl: timedelta) -> TokenPair:
        """Issue an access token (full claims) and a refresh token (userId, tenantId)."""
        return TokenPair(
            access_token=self.issue(claims.to_payload(), access_ttl),
            refresh_token=self.issue(claims.refresh_payload(), refresh_ttl),
        )
