"""
Shared test fixtures for otlp_gateway.

Limiters run against a fake millisecond clock with the background sweep
disabled, so window arithmetic is deterministic. Tests that exercise the
sweep thread build their own controller.
"""

import pytest

from otlp_gateway.limits.admission import AdmissionController
from otlp_gateway.otlp.decoder import OtlpDecoder


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


# ---------------------------------------------------------------------------
# Limiter fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def limiter(clock):
    """Controller with the production limits and no background sweep."""
    controller = AdmissionController(
        window_ms=60_000,
        max_requests=60,
        max_concurrent=10,
        max_entries=50_000,
        cleanup_interval_ms=60_000,
        clock=clock,
        start_sweeper=False,
    )
    yield controller
    controller.close()


# ---------------------------------------------------------------------------
# Decoder fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def decoder() -> OtlpDecoder:
    return OtlpDecoder()
