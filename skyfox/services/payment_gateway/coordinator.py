"""Transaction coordination over the ledger lock.

One call to `process_transaction` is one payment attempt:

    VALIDATED -> LOCK_CHECKED -> ACCEPTED | REJECTED -> TERMINAL

The lock decision is delegated entirely to `Ledger.acquire`, which is a single
atomic conditional write. A live lock on the same card rejects the attempt as
in progress; a stale lock is reclaimed and the attempt is rejected as expired
so the client retries with a fresh attempt. Once an attempt holds the lock,
the record is always deleted after the processing delay, even if the delay
raises.
"""

import random
import time
from dataclasses import dataclass, replace

from skyfox.common.config import settings
from skyfox.common.logging import logger, mask_fingerprint
from skyfox.common.metrics import ledger_errors_total, payment_outcomes_total
from skyfox.common.state_machine import validate_transition
from skyfox.common.tracing import get_tracer
from skyfox.services.payment_gateway.errors import LedgerError, LockConflict, StaleLockReclaimed
from skyfox.services.payment_gateway.ledger import Ledger, TransactionRecord


ACCEPT = "ACCEPT"
REJECT = "REJECT"


@dataclass(frozen=True)
class TransactionOutcome:
    """Decided result of one attempt."""

    status: str
    message: str
    transaction_id: str
    reason: str

    @property
    def accepted(self) -> bool:
        return self.status == ACCEPT


class ProcessingDelay:
    """Blocking wait that models the external processing call."""

    def __init__(self, min_ms: int = 800, max_ms: int = 1600, rng: random.Random | None = None, sleep=time.sleep):
        if min_ms > max_ms:
            raise ValueError("min_ms must not exceed max_ms")
        self.min_ms = min_ms
        self.max_ms = max_ms
        self.rng = rng or random.Random()
        self.sleep = sleep

    def __call__(self) -> int:
        delay_ms = self.rng.randint(self.min_ms, self.max_ms)
        self.sleep(delay_ms / 1000)
        return delay_ms


class TransactionCoordinator:
    """Runs the lock protocol for one attempt against a ledger."""

    def __init__(
        self,
        ledger: Ledger,
        ttl_seconds: int = 300,
        delay: ProcessingDelay | None = None,
        clock=time.time,
        log=logger,
        service_name: str | None = None,
        tracer=None,
    ) -> None:
        self.ledger = ledger
        self.ttl_seconds = ttl_seconds
        self.delay = delay or ProcessingDelay()
        self.clock = clock
        self.log = log
        self.service_name = service_name or settings.service_name
        self.tracer = tracer or get_tracer()

    def _advance(self, state: str, new_state: str) -> str:
        validate_transition(state, new_state)
        return new_state

    def _finish(self, state: str, status: str, message: str, record: TransactionRecord, reason: str):
        state = self._advance(state, "ACCEPTED" if status == ACCEPT else "REJECTED")
        self._advance(state, "TERMINAL")
        payment_outcomes_total.labels(service=self.service_name, status=status, reason=reason).inc()
        return TransactionOutcome(
            status=status,
            message=message,
            transaction_id=record.transaction_id,
            reason=reason,
        )

    def _release(self, transaction_id: str) -> None:
        try:
            self.ledger.delete(transaction_id)
        except LedgerError as exc:
            # Outcome is already decided; the record expires via TTL.
            ledger_errors_total.labels(service=self.service_name, operation="delete").inc()
            self.log.warning("error deleting transaction transaction_id=%s error=%s", transaction_id, exc)

    def process_transaction(self, record: TransactionRecord) -> TransactionOutcome:
        with self.tracer.start_as_current_span("payment.process_transaction") as span:
            span.set_attribute("payment.transaction_id", record.transaction_id)
            outcome = self._run(record)
            span.set_attribute("payment.status", outcome.status)
            span.set_attribute("payment.reason", outcome.reason)
            return outcome

    def _run(self, record: TransactionRecord) -> TransactionOutcome:
        state = "VALIDATED"
        if not record.transaction_id or not record.card_fingerprint:
            return self._finish(state, REJECT, "transaction validation failed", record, "invalid_record")

        now = int(self.clock())
        record = replace(record, created_at=now, expires_at=now + self.ttl_seconds)
        card_hash = mask_fingerprint(record.card_fingerprint)

        try:
            self.ledger.acquire(record)
        except LedgerError:
            ledger_errors_total.labels(service=self.service_name, operation="acquire").inc()
            self.log.exception("error creating transaction card_hash=%s", card_hash)
            return self._finish(state, REJECT, "error creating transaction", record, "store_error")
        except LockConflict:
            state = self._advance(state, "LOCK_CHECKED")
            self.delay()
            self.log.info("transaction in progress card_hash=%s", card_hash)
            return self._finish(state, REJECT, "transaction in progress", record, "in_progress")
        except StaleLockReclaimed as exc:
            state = self._advance(state, "LOCK_CHECKED")
            self.delay()
            self.log.info(
                "stale transaction reclaimed card_hash=%s stale_transaction_id=%s",
                card_hash,
                exc.stale_transaction_id,
            )
            return self._finish(state, REJECT, "transaction expired", record, "expired")

        state = self._advance(state, "LOCK_CHECKED")
        try:
            self.delay()
        finally:
            self._release(record.transaction_id)
        return self._finish(state, ACCEPT, "Transaction processed successfully", record, "accepted")
