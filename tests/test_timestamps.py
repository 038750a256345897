from datetime import datetime, timedelta, timezone

import pytest

from signtoken.clock import FrozenClock, SystemClock
from signtoken.timestamps import format_timestamp, parse_timestamp


def test_format_uses_millisecond_utc_form() -> None:
    moment = datetime(2020, 12, 31, 16, 0, 0, 123456, tzinfo=timezone.utc)

    assert format_timestamp(moment) == "2020-12-31T16:00:00.123Z"


def test_format_converts_offsets_to_utc() -> None:
    moment = datetime(2021, 1, 1, 0, 0, tzinfo=timezone(timedelta(hours=8)))

    assert format_timestamp(moment) == "2020-12-31T16:00:00.000Z"


@pytest.mark.parametrize(
    "value",
    [
        "2020-12-31T16:00:00.000Z",
        "2020-12-31T16:00:00Z",
        "2020-12-31T16:00:00+00:00",
        "2021-01-01T00:00:00.000+08:00",
        "2020-12-31T11:00:00-05:00",
        "2020-12-31T16:00:00",
    ],
)
def test_parse_lands_on_the_same_instant(value: str) -> None:
    assert parse_timestamp(value) == datetime(2020, 12, 31, 16, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["", "yesterday", "2020-13-01T00:00:00Z", "16:00"])
def test_parse_rejects_non_iso_values(value: str) -> None:
    with pytest.raises(ValueError):
        parse_timestamp(value)


def test_system_clock_is_timezone_aware() -> None:
    assert SystemClock().now().tzinfo is not None


def test_frozen_clock_advances_only_when_told() -> None:
    clock = FrozenClock(datetime(2026, 1, 1, 12, 0))

    assert clock.now() == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)
    clock.advance(seconds=30)
    assert clock.now() == datetime(2026, 1, 1, 12, 0, 30, tzinfo=timezone.utc)
