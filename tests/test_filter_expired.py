from datetime import date

import pytest

from eufunding.core.domain_models import NormalizedOpportunity
from eufunding.normalize.eu_portal import filter_expired


TODAY = date(2026, 1, 20)


def opportunity(call_id, deadline):
    return NormalizedOpportunity(
        call_id=call_id,
        title=f"Call {call_id}",
        description="",
        url=f"https://example.org/{call_id}",
        source="EU Funding Portal",
        deadline=deadline,
    )


def test_deadline_exactly_seven_days_ago_is_kept():
    opps = [opportunity("A", "Jan 13, 2026")]

    assert filter_expired(opps, today=TODAY) == opps


def test_deadline_eight_days_ago_is_discarded():
    assert filter_expired([opportunity("A", "Jan 12, 2026")], today=TODAY) == []


def test_long_expired_call_is_discarded():
    result = filter_expired([opportunity("A", "2020-01-01")], today=date(2026, 1, 1))

    assert result == []


@pytest.mark.parametrize("deadline", [None, "", "Unknown", "TBD", "undefined", "sometime soon", "Monday"])
def test_unknown_or_unparseable_deadlines_are_kept(deadline):
    opps = [opportunity("A", deadline)]

    assert filter_expired(opps, today=TODAY) == opps


def test_future_and_recent_deadlines_kept_in_input_order():
    opps = [
        opportunity("future", "Mar 1, 2026"),
        opportunity("old", "Dec 1, 2025"),
        opportunity("today", "Jan 20, 2026"),
        opportunity("tbd", "TBD"),
        opportunity("recent", "2026-01-15"),
    ]

    result = filter_expired(opps, today=TODAY)

    assert [o.call_id for o in result] == ["future", "today", "tbd", "recent"]


def test_time_of_day_does_not_affect_boundary():
    opps = [opportunity("A", "2026-01-13T23:59:59+01:00"), opportunity("B", "2026-01-13T00:00:00")]

    assert [o.call_id for o in filter_expired(opps, today=TODAY)] == ["A", "B"]


def test_defaults_to_current_brussels_date(monkeypatch):
    monkeypatch.setattr("eufunding.normalize.eu_portal.today_brussels", lambda: TODAY)

    result = filter_expired([opportunity("A", "Jan 12, 2026"), opportunity("B", "Jan 14, 2026")])

    assert [o.call_id for o in result] == ["B"]


def test_input_is_not_modified():
    opps = [opportunity("A", "2020-01-01"), opportunity("B", None)]

    filter_expired(opps, today=TODAY)

    assert len(opps) == 2
