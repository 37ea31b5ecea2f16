"""Reservation expiry queries used by the expiry sweeper."""

from datetime import UTC, datetime

from protean.utils.globals import current_domain

from inventory.projections.reservation_status import ReservationStatus
from inventory.stock.stock import ReservationState


def as_utc(value):
    """Normalize a stored datetime to an aware UTC datetime."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def due_reservations(now=None):
    """Pending reservations whose deadline is strictly before ``now``, oldest first."""
    now = as_utc(now or datetime.now(UTC))
    pending = (
        current_domain.repository_for(ReservationStatus)
        ._dao.query.filter(status=ReservationState.PENDING.value)
        .all()
        .items
    )
    due = [r for r in pending if r.expires_at is not None and as_utc(r.expires_at) < now]
    return sorted(due, key=lambda r: as_utc(r.expires_at))

