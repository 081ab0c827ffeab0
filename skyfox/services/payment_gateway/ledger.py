"""Ledger abstraction over the store that holds pending transaction locks.

A `TransactionRecord` is the lock for one card fingerprint. The store is the
only shared mutable state between requests, so every adapter must make
`acquire` a single atomic step: check for an existing record on the
fingerprint and either insert, refuse, or reclaim, with no window in between.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock

from skyfox.services.payment_gateway.errors import LockConflict, StaleLockReclaimed


@dataclass(frozen=True)
class TransactionRecord:
    """One in-flight payment attempt, keyed by transaction id."""

    transaction_id: str
    card_fingerprint: str
    created_at: int = 0
    expires_at: int = 0

    def is_stale(self, now: int) -> bool:
        return self.expires_at < now


class Ledger(ABC):
    """Conditional-write store with a secondary index on card fingerprint."""

    @abstractmethod
    def acquire(self, record: TransactionRecord) -> None:
        """Insert `record` only if its fingerprint has no record.

        Staleness is judged against `record.created_at`. Raises
        `LockConflict` when a live record exists and `StaleLockReclaimed`
        after deleting a stale one; in both cases nothing is inserted.
        """

    @abstractmethod
    def create(self, record: TransactionRecord) -> None:
        """Unconditionally store `record`."""

    @abstractmethod
    def get(self, transaction_id: str) -> TransactionRecord | None:
        """Point lookup by primary key."""

    @abstractmethod
    def find_by_fingerprint(self, card_fingerprint: str) -> TransactionRecord | None:
        """Secondary index lookup, live or stale."""

    @abstractmethod
    def delete(self, transaction_id: str) -> None:
        """Remove a record; missing ids are ignored."""

    @abstractmethod
    def ping(self) -> None:
        """Raise `LedgerError` when the backend is unreachable."""

    def find_live_by_fingerprint(self, card_fingerprint: str, now: int) -> TransactionRecord | None:
        record = self.find_by_fingerprint(card_fingerprint)
        if record is None or record.is_stale(now):
            return None
        return record


class InMemoryLedger(Ledger):
    """Process-local ledger for tests and single-instance development.

    One lock guards both maps so `acquire` is atomic across request threads,
    standing in for the store-side conditional write.
    """

    def __init__(self) -> None:
        self._records: dict[str, TransactionRecord] = {}
        self._by_fingerprint: dict[str, str] = {}
        self._lock = Lock()

    def acquire(self, record: TransactionRecord) -> None:
        with self._lock:
            existing = self._lookup(record.card_fingerprint)
            if existing is not None:
                if not existing.is_stale(record.created_at):
                    raise LockConflict(record.card_fingerprint, existing.transaction_id)
                self._remove(existing.transaction_id)
                raise StaleLockReclaimed(record.card_fingerprint, existing.transaction_id)
            self._store(record)

    def create(self, record: TransactionRecord) -> None:
        with self._lock:
            self._store(record)

    def get(self, transaction_id: str) -> TransactionRecord | None:
        with self._lock:
            return self._records.get(transaction_id)

    def find_by_fingerprint(self, card_fingerprint: str) -> TransactionRecord | None:
        with self._lock:
            return self._lookup(card_fingerprint)

    def delete(self, transaction_id: str) -> None:
        with self._lock:
            self._remove(transaction_id)

    def ping(self) -> None:
        return None

    def _lookup(self, card_fingerprint: str) -> TransactionRecord | None:
        transaction_id = self._by_fingerprint.get(card_fingerprint)
        if transaction_id is None:
            return None
        return self._records.get(transaction_id)

    def _store(self, record: TransactionRecord) -> None:
        self._records[record.transaction_id] = record
        self._by_fingerprint[record.card_fingerprint] = record.transaction_id

    def _remove(self, transaction_id: str) -> None:
        record = self._records.pop(transaction_id, None)
        if record is None:
            return
        if self._by_fingerprint.get(record.card_fingerprint) == transaction_id:
            del self._by_fingerprint[record.card_fingerprint]
