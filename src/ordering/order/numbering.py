"""Order numbers: ``<PREFIX>-YYYYMMDD-NNNN``, sequential per UTC day."""

from datetime import UTC, datetime

from protean.exceptions import ObjectNotFoundError
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from ordering.domain import ordering


@ordering.aggregate
class DailyOrderSequence:
    """Counter of orders created on one UTC day."""

    day = String(identifier=True, max_length=8)  # YYYYMMDD
    last_value = Integer(default=0)

    def next_value(self):
        self.last_value = (self.last_value or 0) + 1
        return self.last_value


def format_order_number(prefix, day, value):
    return f"{prefix}-{day}-{value:04d}"


def next_order_number(prefix="ORD", now=None):
    """Allocate the next number for ``now``'s day inside the current unit of work."""
    day = (now or datetime.now(UTC)).strftime("%Y%m%d")
    repo = current_domain.repository_for(DailyOrderSequence)
    try:
        sequence = repo.get(day)
    except ObjectNotFoundError:
        sequence = DailyOrderSequence(day=day, last_value=0)

    value = sequence.next_value()
    repo.add(sequence)
    return format_order_number(prefix, day, value)
