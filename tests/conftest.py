from datetime import datetime, timezone

import pytest

from signtoken.clock import FrozenClock
from signtoken.codec import TokenCodec
from signtoken.models import Secret

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class CountingClock(FrozenClock):
    def __init__(self, fixed: datetime) -> None:
        super().__init__(fixed)
        self.calls = 0

    def now(self) -> datetime:
        self.calls += 1
        return super().now()


@pytest.fixture
def clock() -> CountingClock:
    return CountingClock(NOW)


@pytest.fixture
def codec(clock: CountingClock) -> TokenCodec:
    return TokenCodec(clock=clock)


@pytest.fixture
def secret() -> Secret:
    return Secret(secret_key="primary", secret_value="s3cret-value")
