"""
Session manager tests: issue, resolve, revoke, expiry.
"""

from datetime import timedelta

import pytest

from chaflow.errors import ForbiddenError
from chaflow.models import SellerSession
from chaflow.services import session_service
from chaflow.services.session_service import Authenticated, RedirectRequired
from chaflow.time_utils import utcnow


def test_issue_stores_only_the_hash(db_session, seller):
    session, token = session_service.issue(seller.id, user_agent="pytest", ip_address="127.0.0.1")

    assert session.token_hash == session_service.hash_token(token)
    assert session.token_hash != token
    assert db_session.query(SellerSession).filter_by(token_hash=token).first() is None
    lifetime = session.expires_at - session.created_at
    assert lifetime == timedelta(days=14)


def test_resolve_returns_context(db_session, seller):
    _, token = session_service.issue(seller.id)

    context = session_service.resolve(token)

    assert context is not None
    assert context.seller.id == seller.id
    assert context.is_admin is False


@pytest.mark.parametrize("token", [None, "", "not-a-real-token"])
def test_resolve_unknown_token(db_session, token):
    assert session_service.resolve(token) is None


def test_expired_session_is_absent_and_deleted(db_session, seller):
    session, token = session_service.issue(seller.id)
    session.expires_at = utcnow() - timedelta(seconds=1)
    db_session.commit()

    assert session_service.resolve(token) is None
    assert db_session.query(SellerSession).count() == 0


def test_revoke(db_session, seller):
    _, token = session_service.issue(seller.id)

    assert session_service.revoke(token) is True
    assert session_service.resolve(token) is None
    assert session_service.revoke(token) is False


def test_revoke_all(db_session, seller, other_seller):
    _, first = session_service.issue(seller.id)
    _, second = session_service.issue(seller.id)
    _, untouched = session_service.issue(other_seller.id)

    assert session_service.revoke_all(seller.id) == 2
    assert session_service.resolve(first) is None
    assert session_service.resolve(second) is None
    assert session_service.resolve(untouched) is not None


def test_disabled_seller_session_is_absent(db_session, seller):
    _, token = session_service.issue(seller.id)
    seller.is_enabled = False
    db_session.commit()

    assert session_service.resolve(token) is None


def test_require_tagged_result(db_session, seller):
    _, token = session_service.issue(seller.id)

    assert isinstance(session_service.require(token), Authenticated)
    missing = session_service.require(None)
    assert isinstance(missing, RedirectRequired)
    assert missing.location == "/login"


def test_require_admin(db_session, admin, seller):
    _, admin_token = session_service.issue(admin.id)
    _, seller_token = session_service.issue(seller.id)

    assert isinstance(session_service.require_admin(admin_token), Authenticated)
    assert isinstance(session_service.require_admin(None), RedirectRequired)
    with pytest.raises(ForbiddenError):
        session_service.require_admin(seller_token)


def test_cleanup_expired_sessions(db_session, seller):
    expired, _ = session_service.issue(seller.id)
    session_service.issue(seller.id)
    expired.expires_at = utcnow() - timedelta(minutes=1)
    db_session.commit()

    assert session_service.cleanup_expired_sessions() == 1
    assert db_session.query(SellerSession).count() == 1


def test_cookie_settings(app, db_session, seller):
    session, _ = session_service.issue(seller.id)
    settings = session_service.cookie_settings(session)

    assert settings["key"] == "CHAFLOW_SESSION"
    assert settings["httponly"] is True
    assert settings["samesite"] == "Lax"
    assert settings["expires"] == session.expires_at
