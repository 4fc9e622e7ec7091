"""
Credential store tests.

Verifies:
- Hash/verify round trip and the self-describing hash format
- Tampered, malformed and foreign hashes never verify (and never raise)
- Weak passwords are rejected before hashing
- authenticate() outcomes for unknown, wrong, disabled and valid accounts
"""

import pytest

from chaflow.errors import AuthenticationError, AccountDisabledError, WeakPasswordError
from chaflow.services import auth_service
from conftest import SELLER_PASSWORD


class TestPasswordHashing:

    def test_hash_then_verify(self, app):
        stored = auth_service.hash_password("correct horse")
        assert auth_service.verify_password("correct horse", stored) is True
        assert auth_service.verify_password("correct h0rse", stored) is False

    def test_hash_format_carries_rounds(self, app):
        stored = auth_service.hash_password("password1")
        algorithm, salt_hex, key_hex = stored.split("$")
        assert algorithm == "bcrypt-pbkdf.1"
        assert len(bytes.fromhex(salt_hex)) == 16
        assert len(bytes.fromhex(key_hex)) == 64

    def test_salts_are_random(self, app):
        assert auth_service.hash_password("password1") != auth_service.hash_password("password1")

    def test_tampered_salt_fails(self, app):
        algorithm, salt_hex, key_hex = auth_service.hash_password("password1").split("$")
        flipped = ("0" if salt_hex[0] != "0" else "1") + salt_hex[1:]
        assert auth_service.verify_password("password1", f"{algorithm}${flipped}${key_hex}") is False

    @pytest.mark.parametrize("stored", [
        None,
        "",
        "plaintext",
        "bcrypt-pbkdf.1$zz$zz",
        "bcrypt-pbkdf.x$00$00",
        "bcrypt-pbkdf.0$0011$0011",
        "sha256$0011$0011",
        "$2b$12$abcdefghijklmnopqrstuv",
    ])
    def test_malformed_hashes_never_verify(self, app, stored):
        assert auth_service.verify_password("password1", stored) is False

    def test_hash_verifies_under_changed_rounds(self, app):
        stored = auth_service.hash_password("password1")
        app.config["PASSWORD_HASH_ROUNDS"] = 2
        try:
            assert auth_service.verify_password("password1", stored) is True
            assert auth_service.hash_password("password1").startswith("bcrypt-pbkdf.2$")
        finally:
            app.config["PASSWORD_HASH_ROUNDS"] = 1

    @pytest.mark.parametrize("password", ["", "short", "1234567"])
    def test_weak_password_rejected(self, app, password):
        with pytest.raises(WeakPasswordError):
            auth_service.hash_password(password)


class TestAuthenticate:

    def test_valid_credentials(self, db_session, seller):
        result = auth_service.authenticate("  HOA@gc.vn ", SELLER_PASSWORD)
        assert result.id == seller.id
        assert result.last_login_at is not None

    def test_unknown_email(self, db_session, seller):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate("nobody@gc.vn", SELLER_PASSWORD)

    def test_wrong_password(self, db_session, seller):
        with pytest.raises(AuthenticationError):
            auth_service.authenticate(seller.email, "wrong-password")

    def test_disabled_account(self, db_session, seller):
        seller.is_enabled = False
        db_session.commit()
        with pytest.raises(AccountDisabledError):
            auth_service.authenticate(seller.email, SELLER_PASSWORD)
