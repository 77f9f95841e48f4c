"""Simulated telephony provider.

Pure value generation: a provider reference, how long the provider takes to
report back, and what it reports. Scheduling the report is the caller's job.
"""

import random
from datetime import datetime, timezone

from calltracker.schemas.calls import Call, CallStatus
from calltracker.schemas.provider import ProviderDispatch

DEFAULT_MIN_DELAY_MS = 800
DEFAULT_MAX_DELAY_MS = 2200
DEFAULT_FAIL_RATE = 0.15
PROVIDER_ID_PREFIX = "prov_"


def clamp_rate(rate: float) -> float:
    return min(1.0, max(0.0, rate))


def pick_provider_delay_ms(
    min_ms: int = DEFAULT_MIN_DELAY_MS,
    max_ms: int = DEFAULT_MAX_DELAY_MS,
    rng: random.Random | None = None,
) -> int:
    """Uniform integer in [min_ms, max_ms]; exactly min_ms when max_ms <= min_ms."""
    if max_ms <= min_ms:
        return min_ms
    rng = rng or random.Random()
    return rng.randint(min_ms, max_ms)


def pick_outcome(
    fail_rate: float = DEFAULT_FAIL_RATE,
    rng: random.Random | None = None,
) -> CallStatus:
    rng = rng or random.Random()
    return CallStatus.FAILED if rng.random() < clamp_rate(fail_rate) else CallStatus.COMPLETED


def generate_provider_id(
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> str:
    """Random bits followed by the epoch milliseconds, both in hex."""
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)
    millis = int(now.timestamp() * 1000)
    return f"{PROVIDER_ID_PREFIX}{rng.getrandbits(52):x}{millis:x}"


class ProviderSimulator:
    def __init__(
        self,
        min_delay_ms: int = DEFAULT_MIN_DELAY_MS,
        max_delay_ms: int = DEFAULT_MAX_DELAY_MS,
        fail_rate: float = DEFAULT_FAIL_RATE,
        rng: random.Random | None = None,
    ) -> None:
        self._min_delay_ms = max(0, min_delay_ms)
        self._max_delay_ms = max(0, max_delay_ms)
        self._fail_rate = clamp_rate(fail_rate)
        self._rng = rng or random.Random()

    def dispatch(self, call: Call) -> ProviderDispatch:
        return ProviderDispatch(
            provider_id=generate_provider_id(self._rng),
            response_delay_ms=pick_provider_delay_ms(
                self._min_delay_ms, self._max_delay_ms, self._rng
            ),
            outcome=pick_outcome(self._fail_rate, self._rng),
        )
