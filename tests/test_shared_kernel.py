"""
Тесты для общего ядра.
"""

from datetime import date, datetime, time

import pytest

from shared_kernel import (
    EntityNotFoundException,
    TimeRange,
    combine,
    format_time,
    parse_date,
    parse_time,
)


class TestParsing:
    """Тесты разбора дат и времени."""

    def test_parse_date(self):
        """Тестирование разбора даты YYYY-MM-DD."""
        assert parse_date("2026-10-19") == date(2026, 10, 19)
        assert parse_date(" 2026-10-19 ") == date(2026, 10, 19)

    @pytest.mark.parametrize("value", ["", "   ", "19.10.2026", "2026-13-01", "2026-02-30"])
    def test_parse_date_rejects_invalid(self, value):
        """Тестирование отказа для некорректных дат."""
        with pytest.raises(ValueError):
            parse_date(value)

    def test_parse_time_accepts_minutes_and_seconds(self):
        """Тестирование разбора времени HH:MM и HH:MM:SS."""
        assert parse_time("09:30") == time(9, 30)
        assert parse_time("14:00:00") == time(14, 0)

    @pytest.mark.parametrize("value", ["", "9:00", "25:00", "10:60", "10:00:30", "10h00"])
    def test_parse_time_rejects_invalid(self, value):
        """Тестирование отказа для некорректного времени."""
        with pytest.raises(ValueError):
            parse_time(value)

    def test_format_time(self):
        """Тестирование форматирования времени."""
        assert format_time(time(8, 0)) == "08:00"
        assert format_time(time(19, 45)) == "19:45"

    def test_combine(self):
        """Тестирование объединения даты и времени."""
        assert combine(date(2026, 10, 19), time(11, 0)) == datetime(2026, 10, 19, 11, 0)


class TestTimeRange:
    """Тесты для объекта-значения TimeRange."""

    def test_overlapping_ranges(self):
        """Тестирование пересекающихся интервалов."""
        a = TimeRange(start=time(9, 0), end=time(10, 0))
        b = TimeRange(start=time(9, 30), end=time(10, 30))
        assert a.overlaps(b)
        assert b.overlaps(a)

    def test_touching_ranges_do_not_overlap(self):
        """Тестирование интервалов, касающихся концами."""
        a = TimeRange(start=time(9, 0), end=time(10, 0))
        b = TimeRange(start=time(10, 0), end=time(11, 0))
        assert not a.overlaps(b)
        assert not b.overlaps(a)

    def test_nested_range_overlaps(self):
        """Тестирование вложенных интервалов."""
        outer = TimeRange(start=time(8, 0), end=time(12, 0))
        inner = TimeRange(start=time(9, 0), end=time(10, 0))
        assert outer.overlaps(inner)
        assert inner.overlaps(outer)

    @pytest.mark.parametrize("start,end", [(time(10, 0), time(10, 0)), (time(14, 0), time(10, 0))])
    def test_empty_or_inverted_range_is_invalid(self, start, end):
        """Тестирование пустого и перевернутого интервала."""
        with pytest.raises(ValueError, match="Время окончания должно быть позже"):
            TimeRange(start=start, end=end)


def test_entity_not_found_message():
    """Тестирование сообщения EntityNotFoundException."""
    exc = EntityNotFoundException("Переговорная", 42)
    assert "Переговорная" in str(exc)
    assert exc.entity_id == 42


def test_public_utilities():
    """Тестирование состава публичных утилит общего ядра."""
    import shared_kernel

    utilities = {"parse_date", "parse_time", "format_time", "combine", "now"}
    assert utilities <= set(shared_kernel.__all__)
    assert not hasattr(shared_kernel, "today")
    assert isinstance(shared_kernel.now(), datetime)
