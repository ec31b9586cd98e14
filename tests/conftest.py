"""Shared test fixtures: a fake clock and a simulated ledger."""

import pytest

from paddeploy.chain.confirmations import ConfirmationWaiter
from paddeploy.chain.memory import InMemoryLedger
from paddeploy.models.profile import NetworkProfile


class FakeClock:
    """Monotonic clock that only advances when sleep() is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def make_profile(**overrides) -> NetworkProfile:
    values = dict(
        name="test",
        endpoint="memory://",
        confirmations_required=1,
        timeout_ms=10_000,
        poll_interval_ms=1000,
    )
    values.update(overrides)
    return NetworkProfile(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def profile() -> NetworkProfile:
    return make_profile()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def waiter(profile: NetworkProfile, clock: FakeClock) -> ConfirmationWaiter:
    return ConfirmationWaiter(profile, clock=clock, sleep=clock.sleep)
