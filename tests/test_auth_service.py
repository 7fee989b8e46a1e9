"""
tests/test_auth_service.py -- Unit tests for auth/service.py (AuthService).

Covers:
  - login issues tokens whose claims match the user's current record
  - unknown email, wrong password and inactive user fail identically
  - unknown email still runs bcrypt (timing equalization)
  - change_password: wrong current password leaves the hash untouched
  - change_password: old password stops working, new one starts working
  - change_password: unknown user id -> NotFound
  - verify_token collapses every failure into TokenInvalid
  - authorize admits listed roles only
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy import text

from auth.exceptions import InsufficientPermissions, InvalidCredentials, InvalidCurrentPassword, NotFound, TokenInvalid
from auth.models import Role, TokenClaims, User
from auth.service import AuthService


class TestLogin:
    def test_login_returns_tokens_for_current_record(self, service: AuthService, staff) -> None:
        result = service.login("owner@x.com", "correct")

        claims = service.verify_token(result.access_token)
        assert claims == TokenClaims(
            user_id=staff.ids["owner@x.com"],
            tenant_id=staff.tenant_id,
            location_id=staff.location_id,
            role=Role.OWNER,
            email="owner@x.com",
        )
        assert service.codec.verify(result.refresh_token) == {
            "userId": staff.ids["owner@x.com"],
            "tenantId": staff.tenant_id,
        }

    def test_login_summary_excludes_hash(self, service: AuthService, staff) -> None:
        summary = service.login("owner@x.com", "correct").user
        assert summary.id == staff.ids["owner@x.com"]
        assert summary.name == "Olive Owner"
        assert summary.role is Role.OWNER
        assert not hasattr(summary, "password_hash")

    def test_unassigned_location_is_empty_string(self, service: AuthService, staff) -> None:
        result = service.login("host@x.com", "host-pass-1")
        assert result.user.location_id == ""
        assert service.verify_token(result.access_token).location_id == ""

    def test_email_lookup_is_case_insensitive(self, service: AuthService, staff) -> None:
        assert service.login("  Owner@X.com ", "correct").user.email == "owner@x.com"

    def test_access_token_uses_configured_ttl(self, store, hasher, codec, clock, staff) -> None:
        svc = AuthService(store, hasher, codec, access_ttl=timedelta(minutes=5), refresh_ttl=timedelta(hours=1))
        result = svc.login("owner@x.com", "correct")
        clock.advance(timedelta(minutes=5))
        with pytest.raises(TokenInvalid):
            svc.verify_token(result.access_token)
        assert svc.codec.verify(result.refresh_token)["userId"] == staff.ids["owner@x.com"]

    def test_wrong_password_and_unknown_email_fail_identically(self, service: AuthService, staff) -> None:
        with pytest.raises(InvalidCredentials) as wrong_pw:
            service.login("owner@x.com", "incorrect")
        with pytest.raises(InvalidCredentials) as unknown:
            service.login("nobody@x.com", "correct")
        assert type(wrong_pw.value) is type(unknown.value)
        assert str(wrong_pw.value) == str(unknown.value) == "Invalid credentials"

    def test_unknown_email_still_runs_bcrypt(self, service: AuthService, staff) -> None:
        with patch.object(service.hasher, "verify_dummy", wraps=service.hasher.verify_dummy) as dummy:
            with pytest.raises(InvalidCredentials):
                service.login("nobody@x.com", "whatever")
        dummy.assert_called_once_with("whatever")

    def test_inactive_user_rejected_with_same_error(self, service: AuthService, store, hasher, staff) -> None:
        store.create_user(
            User(
                email="gone@x.com",
                name="Former Staff",
                role=Role.SERVER,
                tenant_id=staff.tenant_id,
                password_hash=hasher.hash("old-pass"),
                is_active=False,
            )
        )
        with pytest.raises(InvalidCredentials, match="Invalid credentials"):
            service.login("gone@x.com", "old-pass")


class TestChangePassword:
    def test_wrong_current_password_leaves_hash_unchanged(self, service: AuthService, store, staff) -> None:
        user_id = staff.ids["server@x.com"]
        before = store.get_by_id(user_id).password_hash

        with pytest.raises(InvalidCurrentPassword):
            service.change_password(user_id, "not-my-password", "brand-new-pass")

        assert store.get_by_id(user_id).password_hash == before

    def test_old_password_fails_new_password_succeeds(self, service: AuthService, staff) -> None:
        user_id = staff.ids["server@x.com"]
        service.change_password(user_id, "server-pass", "brand-new-pass")

        with pytest.raises(InvalidCredentials):
            service.login("server@x.com", "server-pass")
        assert service.login("server@x.com", "brand-new-pass").user.id == user_id

    def test_existing_tokens_survive_password_change(self, service: AuthService, staff) -> None:
        token = service.login("server@x.com", "server-pass").access_token
        service.change_password(staff.ids["server@x.com"], "server-pass", "brand-new-pass")
        assert service.verify_token(token).user_id == staff.ids["server@x.com"]

    def test_unknown_user(self, service: AuthService, staff) -> None:
        with pytest.raises(NotFound):
            service.change_password("does-not-exist", "whatever", "brand-new-pass")

    def test_user_deleted_between_read_and_write(self, service: AuthService, store, staff) -> None:
        with patch.object(store, "update_password_hash", return_value=False):
            with pytest.raises(NotFound):
                service.change_password(staff.ids["server@x.com"], "server-pass", "brand-new-pass")


class TestVerifyToken:
    def test_refresh_token_is_not_an_access_token(self, service: AuthService, staff) -> None:
        refresh = service.login("owner@x.com", "correct").refresh_token
        with pytest.raises(TokenInvalid):
            service.verify_token(refresh)

    def test_unknown_role_rejected(self, service: AuthService) -> None:
        token = service.codec.issue(
            {"userId": "u", "tenantId": "t", "locationId": "", "role": "JANITOR", "email": "j@x.com"},
            timedelta(hours=1),
        )
        with pytest.raises(TokenInvalid):
            service.verify_token(token)

    def test_garbage(self, service: AuthService) -> None:
        with pytest.raises(TokenInvalid):
            service.verify_token("garbage")

    def test_claims_are_a_snapshot(self, service: AuthService, store, staff) -> None:
        """Changing the stored record does not alter an already-issued token."""
        token = service.login("manager@x.com", "manager-pass").access_token
        with store.engine.connect() as conn:
            conn.execute(text("UPDATE users SET role = 'SERVER' WHERE email = 'manager@x.com'"))
            conn.commit()
        assert service.verify_token(token).role is Role.MANAGER


class TestAuthorize:
    CLAIMS = TokenClaims(user_id="u", tenant_id="t", location_id="", role=Role.SERVER, email="s@x.com")

    def test_rejects_role_outside_set(self) -> None:
        with pytest.raises(InsufficientPermissions, match="MANAGER, OWNER"):
            AuthService.authorize(self.CLAIMS, (Role.MANAGER, Role.OWNER))

    def test_accepts_role_in_set(self) -> None:
        claims = TokenClaims(user_id="u", tenant_id="t", location_id="", role=Role.MANAGER, email="m@x.com")
        assert AuthService.authorize(claims, (Role.MANAGER, Role.OWNER)) is claims
