"""Time-of-day parsing and timezone conversion (pure functions, no DB)."""

from datetime import UTC, date, datetime

import pytest

from centrobook.services.time_normalizer import (
    InvalidTimeFormat,
    UnknownTimezone,
    combine_date_and_time,
    get_zone,
    local_hhmm,
    local_window,
    normalize_to_hhmm,
    parse_date,
    require_hhmm,
)


class TestNormalizeToHHMM:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("08:00", "08:00"),
            ("8:00 a.m.", "08:00"),
            ("8:00am", "08:00"),
            ("8:00 AM", "08:00"),
            ("10:00 p.m.", "22:00"),
            ("10:00 PM", "22:00"),
            ("6:30pm", "18:30"),
            ("9am", "09:00"),
            ("12:00 a.m.", "00:00"),
            ("12:00 p.m.", "12:00"),
            ("  23:59 ", "23:59"),
        ],
    )
    def test_readable(self, raw, expected):
        assert normalize_to_hhmm(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "8:00", "24:00", "13:00 p.m.", "0:30am", "10:60", "noon", "10:00 xm"])
    def test_unreadable(self, raw):
        assert normalize_to_hhmm(raw) is None

    def test_idempotent_on_canonical_input(self):
        for hhmm in ("00:00", "07:05", "12:00", "18:30", "23:59"):
            assert normalize_to_hhmm(normalize_to_hhmm(hhmm)) == hhmm

    def test_require_raises_with_value(self):
        with pytest.raises(InvalidTimeFormat) as exc:
            require_hhmm("25:00")
        assert exc.value.value == "25:00"


class TestZones:
    def test_unknown_timezone(self):
        with pytest.raises(UnknownTimezone):
            get_zone("Mars/Olympus")

    def test_combine_uses_center_zone(self):
        # Madrid is UTC+2 in June
        assert combine_date_and_time("2030-06-03", "10:00", "Europe/Madrid") == datetime(2030, 6, 3, 8, 0, tzinfo=UTC)

    def test_combine_follows_dst(self):
        # Clocks go forward on 31 March 2030
        assert combine_date_and_time(date(2030, 3, 30), "08:00", "Europe/Madrid").hour == 7
        assert combine_date_and_time(date(2030, 3, 31), "08:00", "Europe/Madrid").hour == 6

    def test_local_window_midnight_end(self):
        start, end = local_window(date(2030, 6, 3), "00:00", "00:00", "UTC")
        assert start == datetime(2030, 6, 3, tzinfo=UTC)
        assert end == datetime(2030, 6, 4, tzinfo=UTC)

    def test_local_hhmm(self):
        assert local_hhmm(datetime(2030, 6, 3, 17, 0, tzinfo=UTC), "Europe/Madrid") == "19:00"

    def test_parse_date(self):
        assert parse_date("2030-06-03") == date(2030, 6, 3)
        with pytest.raises(ValueError):
            parse_date("03/06/2030")
