# Overview: Service-layer operations for maintenance; expiry sweeps run from the CLI.

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import CustomerOrderLink
from . import session_service
from chaflow.time_utils import utcnow


def cleanup_expired_sessions(now: datetime | None = None) -> int:
    """Delete sessions past expires_at. Stands in for a TTL index."""
    return session_service.cleanup_expired_sessions(now)


def deactivate_expired_order_links(now: datetime | None = None) -> int:
    """Mark active links whose expires_at has passed as inactive."""
    now = now or utcnow()
    updated = db.session.query(CustomerOrderLink).filter(
        CustomerOrderLink.is_active.is_(True),
        CustomerOrderLink.expires_at <= now,
    ).update({"is_active": False, "updated_at": now})
    db.session.commit()
    return updated
