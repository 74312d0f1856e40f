"""Unit tests for admin passwords, bearer tokens and login lockout."""

from datetime import timedelta

import pytest
from jose import JWTError
from libs.auth.models import AdminPrincipal
from libs.auth.passwords import hash_password, verify_password
from libs.auth.tokens import create_admin_token, decode_admin_token
from libs.common.datetime_utils import utc_now
from tests.factories import AdminFactory


@pytest.mark.unit
class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("olive-branch-42")
        assert hashed.startswith("$2")
        assert hashed != "olive-branch-42"
        assert verify_password("olive-branch-42", hashed)
        assert not verify_password("olive-branch-43", hashed)

    def test_uses_cost_twelve(self):
        assert hash_password("x" * 10).split("$")[2] == "12"

    def test_empty_inputs_never_verify(self):
        assert not verify_password("", "$2b$04$abc")
        assert not verify_password("secret", "")

    def test_malformed_hash_does_not_raise(self):
        assert not verify_password("secret", "not-a-bcrypt-hash")


@pytest.mark.unit
class TestAdminTokens:
    def test_round_trip_carries_scope_and_role(self):
        principal = AdminPrincipal(
            admin_id="a1", email="owner@48roots.com", name="Owner", role="super_admin"
        )
        payload = decode_admin_token(create_admin_token(principal))

        assert payload["sub"] == "a1"
        assert payload["role"] == "super_admin"
        assert payload["scope"] == "admin"
        assert payload["exp"] > payload["iat"]

    def test_tampered_token_rejected(self):
        token = create_admin_token(AdminPrincipal(admin_id="a1"))
        with pytest.raises(JWTError):
            decode_admin_token(token[:-2] + ("aa" if token[-2:] != "aa" else "bb"))


@pytest.mark.unit
class TestLockout:
    def test_fifth_failure_locks_for_two_hours(self):
        admin = AdminFactory.create()
        now = utc_now()

        for _ in range(4):
            admin.register_failed_login(now)
        assert admin.login_attempts == 4
        assert not admin.is_locked(now)

        admin.register_failed_login(now)
        assert admin.login_attempts == 5
        assert admin.is_locked(now)
        assert admin.lock_until == now + timedelta(hours=2)

    def test_lock_expires(self):
        admin = AdminFactory.create()
        now = utc_now()
        for _ in range(5):
            admin.register_failed_login(now)

        later = now + timedelta(hours=2, seconds=1)
        assert not admin.is_locked(later)

    def test_failure_after_expired_lock_restarts_count(self):
        admin = AdminFactory.create()
        now = utc_now()
        for _ in range(5):
            admin.register_failed_login(now)

        later = now + timedelta(hours=3)
        admin.register_failed_login(later)

        assert admin.login_attempts == 1
        assert admin.lock_until is None

    def test_failures_while_locked_keep_original_expiry(self):
        admin = AdminFactory.create()
        now = utc_now()
        for _ in range(5):
            admin.register_failed_login(now)
        lock_until = admin.lock_until

        admin.register_failed_login(now + timedelta(minutes=10))
        assert admin.lock_until == lock_until

    def test_success_resets(self):
        admin = AdminFactory.create(login_attempts=3)
        now = utc_now()

        admin.register_successful_login(now)

        assert admin.login_attempts == 0
        assert admin.lock_until is None
        assert admin.last_login == now
