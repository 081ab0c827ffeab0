"""Shared test setup: in-memory ledger, no tracing, no API key."""

import os

os.environ["LEDGER_BACKEND"] = "memory"
os.environ["OTEL_ENABLED"] = "false"
os.environ["API_KEY"] = ""
os.environ["PAYMENT_MODE"] = "ledger"

import pytest  # noqa: E402

from skyfox.services.payment_gateway.coordinator import ProcessingDelay  # noqa: E402


class RecordingSleep:
    """Stand-in for `time.sleep` that only records requested durations."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def no_delay(recording_sleep) -> ProcessingDelay:
    return ProcessingDelay(0, 0, sleep=recording_sleep)
