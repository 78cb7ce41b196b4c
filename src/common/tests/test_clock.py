from datetime import UTC, datetime, timedelta

import pytest
from freezegun import freeze_time

from common.clock import FrozenClock, SystemClock


@freeze_time("2030-01-01 09:00:00")
def test_system_clock_reads_wall_time() -> None:
    assert SystemClock().now() == datetime(2030, 1, 1, 9, 0, tzinfo=UTC)


class TestFrozenClock:
    def test_only_moves_when_told(self) -> None:
        start = datetime(2030, 1, 1, tzinfo=UTC)
        clock = FrozenClock(start)

        assert clock.now() == start
        assert clock.advance(minutes=30) == start + timedelta(minutes=30)
        assert clock.advance(timedelta(hours=1)) == start + timedelta(hours=1, minutes=30)

        clock.set(start)
        assert clock.now() == start

    def test_rejects_naive_datetimes(self) -> None:
        with pytest.raises(ValueError):
            FrozenClock(datetime(2030, 1, 1))
        clock = FrozenClock(datetime(2030, 1, 1, tzinfo=UTC))
        with pytest.raises(ValueError):
            clock.set(datetime(2030, 1, 2))
