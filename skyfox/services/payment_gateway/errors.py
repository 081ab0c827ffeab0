"""Failure modes of the transaction lock protocol."""


class LedgerError(Exception):
    """The ledger store could not be reached or refused the operation."""


class LockConflict(Exception):
    """A live record already holds the lock for this card fingerprint."""

    def __init__(self, card_fingerprint: str, holder_transaction_id: str | None = None) -> None:
        super().__init__("transaction in progress")
        self.card_fingerprint = card_fingerprint
        self.holder_transaction_id = holder_transaction_id


class StaleLockReclaimed(Exception):
    """An expired record for this card fingerprint was found and deleted."""

    def __init__(self, card_fingerprint: str, stale_transaction_id: str | None = None) -> None:
        super().__init__("transaction expired")
        self.card_fingerprint = card_fingerprint
        self.stale_transaction_id = stale_transaction_id
