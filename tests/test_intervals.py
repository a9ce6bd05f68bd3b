from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from intervals import Interval, as_aware_utc, day_window, local_range, slot_window, to_utc

UTC = ZoneInfo("UTC")
BERLIN = ZoneInfo("Europe/Berlin")


def span(start_hour, start_minute, end_hour, end_minute):
    return Interval(datetime(2024, 6, 1, start_hour, start_minute), datetime(2024, 6, 1, end_hour, end_minute))


class TestOverlap:
    def test_partial_overlap(self):
        assert span(9, 0, 10, 0).overlaps(span(9, 30, 10, 30))
        assert span(9, 30, 10, 30).overlaps(span(9, 0, 10, 0))

    def test_containment(self):
        assert span(9, 0, 12, 0).overlaps(span(10, 0, 11, 0))
        assert span(10, 0, 11, 0).overlaps(span(9, 0, 12, 0))

    def test_identical(self):
        assert span(9, 0, 10, 0).overlaps(span(9, 0, 10, 0))

    def test_touching_endpoints_do_not_overlap(self):
        assert not span(9, 0, 9, 15).overlaps(span(9, 15, 9, 30))
        assert not span(9, 15, 9, 30).overlaps(span(9, 0, 9, 15))

    def test_disjoint(self):
        assert not span(9, 0, 10, 0).overlaps(span(11, 0, 12, 0))

    def test_validity(self):
        assert span(9, 0, 10, 0).is_valid
        assert not span(10, 0, 10, 0).is_valid
        assert not span(11, 0, 10, 0).is_valid


class TestSlots:
    def test_quarter_hours(self):
        slots = list(span(9, 0, 10, 0).slots())
        assert len(slots) == 4
        assert slots[0] == span(9, 0, 9, 15)
        assert slots[-1] == span(9, 45, 10, 0)

    def test_short_tail_dropped(self):
        assert len(list(span(9, 0, 9, 40).slots())) == 2


class TestTimezones:
    def test_naive_input_read_in_reference_zone(self):
        assert to_utc(datetime(2024, 6, 1, 9, 0), BERLIN) == datetime(2024, 6, 1, 7, 0)

    def test_aware_input_converted(self):
        aware = datetime(2024, 6, 1, 9, 0, tzinfo=timezone(timedelta(hours=-4)))
        assert to_utc(aware, BERLIN) == datetime(2024, 6, 1, 13, 0)

    def test_output_is_utc_aware(self):
        assert as_aware_utc(datetime(2024, 6, 1, 9, 0)).tzinfo == timezone.utc

    def test_day_window_utc(self):
        window = day_window(date(2024, 6, 1), UTC)
        assert window == Interval(datetime(2024, 6, 1), datetime(2024, 6, 2))

    def test_day_window_follows_local_midnight(self):
        window = day_window(date(2024, 6, 1), BERLIN)
        assert window == Interval(datetime(2024, 5, 31, 22, 0), datetime(2024, 6, 1, 22, 0))

    def test_day_window_on_dst_change_is_23_hours(self):
        window = day_window(date(2024, 3, 31), BERLIN)
        assert window.duration == timedelta(hours=23)

    def test_slot_window(self):
        window = slot_window(date(2024, 6, 1), time(9, 30), UTC)
        assert window == span(9, 30, 9, 45)

    def test_local_range(self):
        hours = local_range(date(2024, 6, 1), time(9, 0), time(18, 0), BERLIN)
        assert hours == span(7, 0, 16, 0)
