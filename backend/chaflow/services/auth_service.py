# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Credential store and seller authentication.

Password hashes are self-describing strings:

    {algorithm}${salt_hex}${derived_key_hex}

where algorithm is "bcrypt-pbkdf.<rounds>". The derived key comes from
bcrypt.kdf (bcrypt_pbkdf) with a 16-byte random salt and a 64-byte output.
Keeping the work factor inside the string lets PASSWORD_HASH_ROUNDS change
without invalidating hashes written under an older setting.

SECURITY NOTES:
- Minimum 8 characters, no other composition rules
- verify_password never raises: malformed or unknown hashes simply fail
- Derived keys are compared with hmac.compare_digest
"""

import hmac
import os

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import Seller
from ..errors import AuthenticationError, AccountDisabledError, WeakPasswordError
from chaflow.time_utils import utcnow


MIN_PASSWORD_LENGTH = 8
ALGORITHM_PREFIX = "bcrypt-pbkdf"
SALT_BYTES = 16
KEY_BYTES = 64
DEFAULT_ROUNDS = 64


def _configured_rounds() -> int:
    try:
        return int(current_app.config.get("PASSWORD_HASH_ROUNDS", DEFAULT_ROUNDS))
    except RuntimeError:
        # Outside an application context (e.g. scripts)
        return DEFAULT_ROUNDS


def _derive(password: str, salt: bytes, rounds: int) -> bytes:
    return bcrypt.kdf(password.encode("utf-8"), salt, KEY_BYTES, rounds, ignore_few_rounds=True)


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


def hash_password(password: str) -> str:
    """
    Hash a password into the "{algorithm}${salt}${key}" format.

    Raises WeakPasswordError for passwords shorter than 8 characters.
    """
    validate_password_strength(password)
    rounds = _configured_rounds()
    salt = os.urandom(SALT_BYTES)
    derived = _derive(password, salt, rounds)
    return f"{ALGORITHM_PREFIX}.{rounds}${salt.hex()}${derived.hex()}"


def verify_password(password: str, stored_hash: str | None) -> bool:
    """
    Check a password against a stored hash.

    Returns False for any malformed, unrecognized or non-matching hash.
    """
    if not password or not stored_hash:
        return False

    parts = stored_hash.split("$")
    if len(parts) != 3:
        return False
    algorithm, salt_hex, key_hex = parts

    prefix, _, rounds_raw = algorithm.partition(".")
    if prefix != ALGORITHM_PREFIX or not rounds_raw.isdigit():
        return False
    rounds = int(rounds_raw)
    if rounds < 1:
        return False

    try:
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(key_hex)
    except ValueError:
        return False
    if not salt or len(expected) != KEY_BYTES:
        return False

    derived = _derive(password, salt, rounds)
    return hmac.compare_digest(derived, expected)


def normalize_email(value: str | None) -> str:
    return (value or "").strip().lower()


def authenticate(email: str, password: str) -> Seller:
    """
    Resolve credentials to a Seller.

    Raises AuthenticationError for unknown email / wrong password and
    AccountDisabledError for a disabled account. Stamps last_login_at.
    """
    normalized = normalize_email(email)
    seller = db.session.query(Seller).filter_by(email=normalized).first()

    if not seller or not verify_password(password, seller.password_hash):
        current_app.logger.warning("Failed login attempt for %s", normalized)
        raise AuthenticationError("Invalid email or password")

    if not seller.is_enabled:
        current_app.logger.warning("Login attempt for disabled seller %s", seller.id)
        raise AccountDisabledError("This account has been disabled")

    seller.last_login_at = utcnow()
    db.session.commit()
    current_app.logger.info("Seller %s logged in", seller.id)
    return seller
