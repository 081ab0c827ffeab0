"""Postgres-backed ledger using a unique index as the conditional write."""

from sqlalchemy import delete, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from skyfox.common.logging import logger, mask_fingerprint
from skyfox.services.payment_gateway.errors import LedgerError, LockConflict, StaleLockReclaimed
from skyfox.services.payment_gateway.ledger import Ledger, TransactionRecord
from skyfox.services.payment_gateway.models import PendingTransaction


class SqlLedger(Ledger):
    """Ledger over the `pending_transactions` table.

    `acquire` runs one DB transaction: delete a stale row for the fingerprint,
    and if none was deleted, insert with `ON CONFLICT DO NOTHING` against the
    unique fingerprint index. Concurrent attempts serialize on that index, so
    at most one row per fingerprint can exist.
    """

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory
        self.table = PendingTransaction.__table__

    def _insert_ignoring_conflict(self, db, record: TransactionRecord):
        dialect = db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        return (
            insert(self.table)
            .values(
                transaction_id=record.transaction_id,
                card_fingerprint=record.card_fingerprint,
                created_at=record.created_at,
                expires_at=record.expires_at,
            )
            .on_conflict_do_nothing(index_elements=["card_fingerprint"])
        )

    def acquire(self, record: TransactionRecord) -> None:
        with self.session_factory() as db:
            try:
                reclaimed = db.execute(
                    delete(self.table)
                    .where(self.table.c.card_fingerprint == record.card_fingerprint)
                    .where(self.table.c.expires_at < record.created_at)
                ).rowcount
                inserted = 0
                if not reclaimed:
                    inserted = db.execute(self._insert_ignoring_conflict(db, record)).rowcount
                db.commit()
            except SQLAlchemyError as exc:
                logger.warning(
                    "ledger acquire failed card_hash=%s error=%s",
                    mask_fingerprint(record.card_fingerprint),
                    exc,
                )
                raise LedgerError("failed to create transaction") from exc

        if reclaimed:
            raise StaleLockReclaimed(record.card_fingerprint)
        if not inserted:
            raise LockConflict(record.card_fingerprint)

    def create(self, record: TransactionRecord) -> None:
        with self.session_factory() as db:
            try:
                db.add(
                    PendingTransaction(
                        transaction_id=record.transaction_id,
                        card_fingerprint=record.card_fingerprint,
                        created_at=record.created_at,
                        expires_at=record.expires_at,
                    )
                )
                db.commit()
            except SQLAlchemyError as exc:
                raise LedgerError("failed to create transaction") from exc

    def get(self, transaction_id: str) -> TransactionRecord | None:
        with self.session_factory() as db:
            try:
                row = db.get(PendingTransaction, transaction_id)
            except SQLAlchemyError as exc:
                raise LedgerError("failed to get transaction") from exc
            return self._to_record(row)

    def find_by_fingerprint(self, card_fingerprint: str) -> TransactionRecord | None:
        with self.session_factory() as db:
            try:
                row = db.execute(
                    select(PendingTransaction).where(PendingTransaction.card_fingerprint == card_fingerprint)
                ).scalar_one_or_none()
            except SQLAlchemyError as exc:
                raise LedgerError("failed to query by card fingerprint") from exc
            return self._to_record(row)

    def delete(self, transaction_id: str) -> None:
        with self.session_factory() as db:
            try:
                db.execute(delete(self.table).where(self.table.c.transaction_id == transaction_id))
                db.commit()
            except SQLAlchemyError as exc:
                raise LedgerError("failed to delete transaction") from exc

    def ping(self) -> None:
        with self.session_factory() as db:
            try:
                db.execute(text("SELECT 1"))
            except SQLAlchemyError as exc:
                raise LedgerError("database connection issue") from exc

    @staticmethod
    def _to_record(row: PendingTransaction | None) -> TransactionRecord | None:
        if row is None:
            return None
        return TransactionRecord(
            transaction_id=row.transaction_id,
            card_fingerprint=row.card_fingerprint,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )
