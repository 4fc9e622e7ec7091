# Overview: Service-layer operations for session; encapsulates business logic and database work.

"""
Session Token Management Service

Tokens are 32 random bytes (URL-safe base64), hashed with SHA-256 before
storage and valid for SESSION_DURATION_DAYS (14 by default). Sessions have
no idle timeout.

A session is ACTIVE until it expires or is revoked. Both terminal states are
represented by the row being gone: revoke deletes the row, and expired rows
are deleted when read or by cleanup_expired_sessions().
"""

import secrets
import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import SellerSession, Seller
from ..errors import ForbiddenError
from chaflow.time_utils import utcnow


DEFAULT_SESSION_DURATION = timedelta(days=14)
LOGIN_REDIRECT = "/login"


@dataclass
class SessionContext:
    """Resolved session: the seller plus the session record."""
    seller: Seller
    session: SellerSession

    @property
    def is_admin(self) -> bool:
        return self.seller.is_admin


@dataclass(frozen=True)
class Authenticated:
    context: SessionContext


@dataclass(frozen=True)
class RedirectRequired:
    location: str = LOGIN_REDIRECT


def session_duration() -> timedelta:
    try:
        days = current_app.config.get("SESSION_DURATION_DAYS")
    except RuntimeError:
        days = None
    return timedelta(days=days) if days else DEFAULT_SESSION_DURATION


def generate_token() -> str:
    """32 bytes of entropy, URL-safe. This plaintext is never stored."""
    return secrets.token_urlsafe(32)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def issue(
    seller_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SellerSession, str]:
    """
    Create a session for the seller.

    Returns (session_record, plaintext_token).
    """
    now = utcnow()
    plaintext_token = generate_token()

    session = SellerSession(
        seller_id=seller_id,
        token_hash=hash_token(plaintext_token),
        user_agent=(user_agent or "")[:300] or None,
        ip_address=(ip_address or "")[:64] or None,
        created_at=now,
        last_seen_at=now,
        expires_at=now + session_duration(),
    )

    db.session.add(session)
    db.session.commit()

    return session, plaintext_token


def resolve(token: str | None) -> SessionContext | None:
    """
    Return the SessionContext for a token, or None.

    Never raises for a blank or unknown token. Expired sessions and
    sessions of disabled or missing sellers are deleted on the way out.
    """
    if not token:
        return None

    now = utcnow()
    session = db.session.query(SellerSession).filter_by(token_hash=hash_token(token)).first()
    if not session:
        return None

    if session.expires_at <= now:
        db.session.delete(session)
        db.session.commit()
        return None

    seller = db.session.get(Seller, session.seller_id)
    if not seller or not seller.is_enabled:
        db.session.delete(session)
        db.session.commit()
        return None

    session.last_seen_at = now
    db.session.commit()

    return SessionContext(seller=seller, session=session)


def require(token: str | None) -> Authenticated | RedirectRequired:
    context = resolve(token)
    if context is None:
        return RedirectRequired()
    return Authenticated(context)


def require_admin(token: str | None) -> Authenticated | RedirectRequired:
    """Like require(), but raises ForbiddenError for a non-admin seller."""
    result = require(token)
    if isinstance(result, Authenticated) and not result.context.is_admin:
        raise ForbiddenError("Administrator access required")
    return result


def revoke(token: str | None) -> bool:
    """Delete the session for this token. Idempotent; False if nothing matched."""
    if not token:
        return False

    deleted = db.session.query(SellerSession).filter_by(token_hash=hash_token(token)).delete()
    db.session.commit()
    return deleted > 0


def revoke_all(seller_id: int) -> int:
    """Delete every session of the seller. Returns the count deleted."""
    deleted = db.session.query(SellerSession).filter_by(seller_id=seller_id).delete()
    db.session.commit()
    return deleted


def cleanup_expired_sessions(now: datetime | None = None) -> int:
    """Delete sessions whose expires_at has passed."""
    cutoff = now or utcnow()
    deleted = db.session.query(SellerSession).filter(
        SellerSession.expires_at <= cutoff
    ).delete()
    db.session.commit()
    return deleted


def cookie_settings(session: SellerSession) -> dict:
    """Keyword arguments for Response.set_cookie carrying a session token."""
    return {
        "key": current_app.config.get("SESSION_COOKIE_NAME", "CHAFLOW_SESSION"),
        "httponly": True,
        "samesite": "Lax",
        "secure": bool(current_app.config.get("SESSION_COOKIE_SECURE", False)),
        "path": "/",
        "expires": session.expires_at,
    }
