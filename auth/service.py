"""
auth/service.py -- Login, password change and token verification.

AuthService is constructed once in the app lifespan with its collaborators
passed in explicitly; route handlers receive it through a FastAPI dependency.
Tests build their own instance with an in-memory store and a fixed clock.

Ordering: within each call, credential verification always happens before
token issuance (login) or before the new hash is written (change_password).

The methods are synchronous. bcrypt is CPU-bound, and the routes that call
into this service are plain `def` handlers, so FastAPI runs them in its
worker thread pool instead of on the event loop.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from auth.exceptions import (
    InsufficientPermissions,
    InvalidCredentials,
    InvalidCurrentPassword,
    NotFound,
    TokenInvalid,
)
from auth.models import LoginResult, Role, TokenClaims, UserSummary
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenCodec

logger = logging.getLogger("blackpot.auth")


class AuthService:
    def __init__(
        self,
        store: UserStore,
        hasher: PasswordHasher,
        codec: TokenCodec,
        access_ttl: timedelta = timedelta(hours=24),
        refresh_ttl: timedelta = timedelta(days=7),
    ) -> None:
        self.store = store
        self.hasher = hasher
        self.codec = codec
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl

    def login(self, email: str, password: str) -> LoginResult:
        """Verify credentials and issue an access/refresh token pair.

        Unknown email, wrong password and deactivated account all raise the
        same InvalidCredentials. bcrypt runs in every branch so response time
        does not reveal which one applied [C1].
        """
        user = self.store.get_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
            logger.info("Login rejected: unknown account")
            raise InvalidCredentials()
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login rejected: bad password for user %s", user.id)
            raise InvalidCredentials()
        if not user.is_active:
            logger.info("Login rejected: inactive user %s", user.id)
            raise InvalidCredentials()

        claims = TokenClaims.from_user(user)
        pair = self.codec.issue_pair(claims, self.access_ttl, self.refresh_ttl)
        logger.info("Login succeeded for user %s (role=%s)", user.id, user.role.value)
        return LoginResult(
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            user=UserSummary.from_user(user),
        )

    def change_password(self, user_id: str, current_password: str, new_password: str) -> None:
        """Rotate a user's password after re-verifying the current one.

        user_id must come from verified token claims, never from the request
        body. Tokens issued before the change stay valid until they expire.
        """
        user = self.store.get_by_id(user_id)
        if user is None:
            raise NotFound()
        if not self.hasher.verify(current_password, user.password_hash):
            logger.info("Password change rejected for user %s: current password mismatch", user_id)
            raise InvalidCurrentPassword()

        if not self.store.update_password_hash(user_id, self.hasher.hash(new_password)):
            # Deleted between the read and the write.
            raise NotFound()
        logger.info("Password updated for user %s", user_id)

    def verify_token(self, token: str) -> TokenClaims:
        """Return the access claims of a valid token.

        Every failure, including a token that verifies but lacks access claims
        (e.g. a refresh token), is reported as TokenInvalid.
        """
        payload = self.codec.verify(token)
        try:
            return TokenClaims.from_payload(payload)
        except (KeyError, ValueError) as exc:
            raise TokenInvalid() from exc

    @staticmethod
    def authorize(claims: TokenClaims, allowed: tuple[Role, ...]) -> TokenClaims:
        """Raise InsufficientPermissions unless the claims' role is in allowed."""
        if claims.role not in allowed:
            accepted = ", ".join(r.value for r in allowed)
            raise InsufficientPermissions(f"This action requires one of: {accepted}")
        return claims
