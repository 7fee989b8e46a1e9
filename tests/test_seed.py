"""Tests for auth/seed.py and the `main.py seed` command."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError

import main
from auth.models import Role
from auth.passwords import PasswordHasher
from auth.seed import STAFF, seed_staff
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import TokenCodec


def test_seed_creates_full_roster(store: UserStore, hasher: PasswordHasher) -> None:
    result = seed_staff(store, hasher, password="seeded-pass")

    users = store.list_users(result.tenant_id)
    assert len(users) == len(STAFF) == 13
    assert {u.email for u in users} == {email for email, _, _ in STAFF}
    assert all(u.location_id == result.location_id for u in users)
    roles = [u.role for u in users]
    assert roles.count(Role.SERVER) == 5
    assert roles.count(Role.CHEF) == 3


def test_seeded_accounts_can_log_in(store: UserStore, hasher: PasswordHasher, codec: TokenCodec) -> None:
    seed_staff(store, hasher, password="seeded-pass")
    service = AuthService(store, hasher, codec)

    result = service.login("owner@blackpot.com", "seeded-pass")
    assert result.user.role is Role.OWNER
    assert service.verify_token(result.access_token).email == "owner@blackpot.com"


def test_reseed_without_reset_conflicts(store: UserStore, hasher: PasswordHasher) -> None:
    seed_staff(store, hasher)
    with pytest.raises(IntegrityError):
        seed_staff(store, hasher)


def test_reseed_with_reset_replaces(store: UserStore, hasher: PasswordHasher) -> None:
    first = seed_staff(store, hasher)
    second = seed_staff(store, hasher, reset=True)
    assert store.count_users() == len(STAFF)
    assert second.tenant_id != first.tenant_id


def test_cli_seed(tmp_path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    db_url = f"sqlite:///{tmp_path / 'seed.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)
    main.get_settings.cache_clear()
    try:
        assert main.main(["seed", "--password", "cli-pass-123"]) == 0
        assert "Seeded 13 accounts" in capsys.readouterr().out
        # Second run without --reset reports the conflict instead of crashing.
        assert main.main(["seed"]) == 1
        assert main.main(["seed", "--reset"]) == 0
    finally:
        main.get_settings.cache_clear()

    store = UserStore(db_url)
    try:
        assert store.count_users() == 13
    finally:
        store.close()
