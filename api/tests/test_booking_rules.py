"""Reservation rules (pure checks, plus the conflict check with a patched store)."""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from centrobook.services.availability import BusyInterval
from centrobook.services.booking_rules import (
    RULE_COURT_CONFLICT,
    check_court_conflict,
    check_duration,
    check_price_override,
    check_within_operating_hours,
    validate_reservation_request,
)
from centrobook.services.operating_hours import normalize_config
from centrobook.services.pricing import CourtRate, calculate

CONFIG = normalize_config(
    {
        "weekly_schedule": {"monday": {"open": "10:00", "close": "14:00"}, "sunday": {"closed": True}},
        "timezone": "UTC",
    }
)
NOW = datetime(2030, 1, 1, tzinfo=UTC)


def _at(hour, minute=0, day=3):
    return datetime(2030, 6, day, hour, minute, tzinfo=UTC)


def _breakdown(total="20"):
    court = CourtRate(id=1, hourly_rate=Decimal(total))
    return calculate(court, _at(10), 60, CONFIG)


class TestDuration:
    def test_bounds(self):
        assert check_duration(30) is None
        assert check_duration(480) is None
        assert check_duration(29).rule == "duration"
        assert check_duration(481).rule == "duration"

    def test_message(self):
        assert check_duration(0).message == "Duration 0 minutes not allowed. Choose between 30 minutes and 8 hours."


class TestOperatingHours:
    def test_inside(self):
        assert check_within_operating_hours(_at(13), 60, CONFIG) is None

    def test_runs_past_closing(self):
        v = check_within_operating_hours(_at(13, 30), 60, CONFIG)
        assert v.rule == "operating_hours"
        assert "10:00-14:00" in v.message

    def test_closed_day(self):
        assert check_within_operating_hours(_at(11, day=9), 60, CONFIG).rule == "closed"


class TestPriceOverride:
    def test_role_checked_first(self):
        (v,) = check_price_override(_breakdown(), -2, "", allowed=False)
        assert v.rule == "override_forbidden"

    def test_reason_before_bounds(self):
        (v,) = check_price_override(_breakdown(), -100, "no", allowed=True)
        assert v.rule == "override_reason"

    def test_bounds(self):
        (v,) = check_price_override(_breakdown(), -100, "Cliente habitual", allowed=True)
        assert v.rule == "override_bounds"
        assert "20%" in v.message

    def test_valid(self):
        assert check_price_override(_breakdown(), Decimal("-4"), "Cliente habitual", allowed=True) == []


class TestValidateRequest:
    def test_valid(self):
        assert validate_reservation_request(_at(10), 60, CONFIG, NOW) == []

    def test_collects_several_violations(self):
        later = datetime(2031, 1, 1, tzinfo=UTC)
        violations = validate_reservation_request(
            _at(13, 30),
            60,
            CONFIG,
            later,
            breakdown=_breakdown(),
            override_amount=-50,
            override_reason="Cliente habitual",
            override_allowed=True,
        )
        assert [v.rule for v in violations] == ["past_reservation", "operating_hours", "override_bounds"]

    def test_bad_duration_stops_early(self):
        violations = validate_reservation_request(_at(13, 30), 5, CONFIG, NOW)
        assert [v.rule for v in violations] == ["duration"]

    def test_no_override_no_override_checks(self):
        assert validate_reservation_request(_at(10), 60, CONFIG, NOW, override_allowed=False) == []


class TestCourtConflict:
    @patch("centrobook.services.booking_rules.load_busy_intervals", new_callable=AsyncMock)
    async def test_overlap(self, mock_busy):
        mock_busy.return_value = [BusyInterval(court_id=7, start=_at(10), end=_at(11), status="PAID")]
        v = await check_court_conflict(object(), 7, _at(10, 30), _at(11, 30))
        assert v.rule == RULE_COURT_CONFLICT
        assert "already booked" in v.message

    @patch("centrobook.services.booking_rules.load_busy_intervals", new_callable=AsyncMock)
    async def test_touching_is_not_a_conflict(self, mock_busy):
        mock_busy.return_value = [BusyInterval(court_id=7, start=_at(10), end=_at(11))]
        assert await check_court_conflict(object(), 7, _at(11), _at(12)) is None

    @patch("centrobook.services.booking_rules.load_busy_intervals", new_callable=AsyncMock)
    async def test_maintenance(self, mock_busy):
        mock_busy.return_value = [BusyInterval(court_id=7, start=_at(9), end=_at(14), source="maintenance")]
        v = await check_court_conflict(object(), 7, _at(10), _at(11))
        assert "maintenance" in v.message

    @patch("centrobook.services.booking_rules.load_busy_intervals", new_callable=AsyncMock)
    async def test_excluded_reservation_passed_through(self, mock_busy):
        mock_busy.return_value = []
        db = object()
        assert await check_court_conflict(db, 7, _at(10), _at(11), exclude_reservation_id=42) is None
        mock_busy.assert_awaited_once_with(db, 7, _at(10), _at(11), 42)
