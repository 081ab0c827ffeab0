"""Card network simulation for the direct (no ledger) deployment mode.

Direct mode has no idempotency at all: two concurrent requests for the same
card are both sent to the simulated network.
"""

import random
import time
from dataclasses import dataclass

from skyfox.common.logging import logger
from skyfox.services.payment_gateway.schemas import PaymentRequest


SUCCESS = "SUCCESS"
FAILED = "FAILED"
DECLINE_MESSAGE = "payment declined by the issuing bank"


@dataclass(frozen=True)
class PaymentResult:
    status: str
    error: str | None = None


class CardNetworkSimulator:
    """Stands in for an external payment rail: random latency and declines."""

    def __init__(
        self,
        min_ms: int = 400,
        max_ms: int = 800,
        decline_rate: float = 0.1,
        rng: random.Random | None = None,
        sleep=time.sleep,
    ) -> None:
        if not 0.0 <= decline_rate <= 1.0:
            raise ValueError("decline_rate must be within [0, 1]")
        self.min_ms = min_ms
        self.max_ms = max_ms
        self.decline_rate = decline_rate
        self.rng = rng or random.Random()
        self.sleep = sleep

    def process_payment(self, req: PaymentRequest) -> PaymentResult:
        del req
        delay_ms = self.rng.randint(self.min_ms, self.max_ms)
        self.sleep(delay_ms / 1000)
        if self.rng.random() < self.decline_rate:
            logger.info("card network declined payment delay_ms=%s", delay_ms)
            return PaymentResult(status=FAILED, error=DECLINE_MESSAGE)
        return PaymentResult(status=SUCCESS)
