"""BDD tests for reservation expiry."""

from datetime import UTC, datetime, timedelta

from pytest_bdd import parsers, scenarios, when

scenarios("features/reservation_expiry.feature")


@when(parsers.cfparse("the sweeper runs {minutes:d} minutes from now"), target_fixture="sweep")
def _(services, minutes):
    return services.sweeper.sweep_once(now=datetime.now(UTC) + timedelta(minutes=minutes))
