"""
CLI command tests (system / sellers / maintenance groups).
"""

from datetime import timedelta

from chaflow.models import Seller, SellerSession, PriceProfile
from chaflow.services import session_service
from chaflow.time_utils import utcnow


def test_system_init_creates_admin_once(app, db_session):
    runner = app.test_cli_runner()

    first = runner.invoke(args=["system", "init"])
    second = runner.invoke(args=["system", "init"])

    assert "PASS Created admin" in first.output
    assert "already exists" in second.output
    assert db_session.query(Seller).count() == 1


def test_system_seed(app, db_session):
    result = app.test_cli_runner().invoke(args=["system", "seed"])

    assert result.exit_code == 0
    assert "PASS Products created: 11" in result.output
    assert db_session.query(PriceProfile).count() == 2


def test_sellers_create_and_list(app, db_session, admin):
    runner = app.test_cli_runner()

    created = runner.invoke(args=[
        "sellers", "create", "--name", "Seller Lan", "--email", "lan@gc.vn", "--password", "password1",
    ])
    listed = runner.invoke(args=["sellers", "list"])

    assert "PASS Created seller: lan@gc.vn" in created.output
    assert "lan@gc.vn" in listed.output
    assert "admin@gc.vn" in listed.output


def test_sellers_create_duplicate_fails(app, db_session, admin, seller):
    result = app.test_cli_runner().invoke(args=[
        "sellers", "create", "--name", "Dup", "--email", seller.email, "--password", "password1",
    ])
    assert result.exit_code == 1
    assert "FAIL" in result.output


def test_maintenance_cleanup_sessions(app, db_session, seller):
    expired, _ = session_service.issue(seller.id)
    expired.expires_at = utcnow() - timedelta(days=1)
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["maintenance", "cleanup-sessions"])

    assert "PASS Deleted 1 expired session(s)" in result.output
    assert db_session.query(SellerSession).count() == 0


def test_maintenance_expire_links(app, db_session):
    result = app.test_cli_runner().invoke(args=["maintenance", "expire-links"])
    assert "PASS Deactivated 0 expired order link(s)" in result.output
