"""Redis-backed ledger with Lua scripts as the conditional write.

Layout: the record is a hash at `<prefix>txn:<transaction_id>` and the
fingerprint index is a string at `<prefix>card:<fingerprint>` holding the
transaction id. Both keys get a retention expiry longer than the TTL so a
stale record stays visible long enough to be reclaimed explicitly.
"""

import redis

from skyfox.common.logging import logger, mask_fingerprint
from skyfox.services.payment_gateway.errors import LedgerError, LockConflict, StaleLockReclaimed
from skyfox.services.payment_gateway.ledger import Ledger, TransactionRecord


# KEYS: fingerprint index key, new record key
# ARGV: transaction_id, card_fingerprint, created_at, expires_at, record key prefix, retention seconds
ACQUIRE_LUA = """
local current = redis.call('GET', KEYS[1])
if current then
  local existing_key = ARGV[5] .. current
  local expires_at = tonumber(redis.call('HGET', existing_key, 'expires_at'))
  if expires_at and expires_at >= tonumber(ARGV[3]) then
    return {'CONFLICT', current}
  end
  redis.call('DEL', existing_key, KEYS[1])
  if expires_at then
    return {'RECLAIMED', current}
  end
end
redis.call('HSET', KEYS[2], 'transaction_id', ARGV[1], 'card_fingerprint', ARGV[2],
           'created_at', ARGV[3], 'expires_at', ARGV[4])
redis.call('SET', KEYS[1], ARGV[1])
redis.call('EXPIRE', KEYS[2], ARGV[6])
redis.call('EXPIRE', KEYS[1], ARGV[6])
return {'ACQUIRED', ARGV[1]}
"""

# KEYS: record key
# ARGV: fingerprint index key prefix, transaction_id
RELEASE_LUA = """
local fingerprint = redis.call('HGET', KEYS[1], 'card_fingerprint')
redis.call('DEL', KEYS[1])
if fingerprint then
  local index_key = ARGV[1] .. fingerprint
  if redis.call('GET', index_key) == ARGV[2] then
    redis.call('DEL', index_key)
  end
end
return 1
"""


class RedisLedger(Ledger):
    """Ledger over a Redis client created with `decode_responses=True`."""

    def __init__(self, client: redis.Redis, retention_seconds: int = 3600, prefix: str = "skyfox:") -> None:
        self.client = client
        self.retention_seconds = retention_seconds
        self.record_prefix = f"{prefix}txn:"
        self.index_prefix = f"{prefix}card:"
        self._acquire_script = client.register_script(ACQUIRE_LUA)
        self._release_script = client.register_script(RELEASE_LUA)

    def _record_key(self, transaction_id: str) -> str:
        return f"{self.record_prefix}{transaction_id}"

    def _index_key(self, card_fingerprint: str) -> str:
        return f"{self.index_prefix}{card_fingerprint}"

    def acquire(self, record: TransactionRecord) -> None:
        try:
            result, transaction_id = self._acquire_script(
                keys=[self._index_key(record.card_fingerprint), self._record_key(record.transaction_id)],
                args=[
                    record.transaction_id,
                    record.card_fingerprint,
                    record.created_at,
                    record.expires_at,
                    self.record_prefix,
                    self.retention_seconds,
                ],
            )
        except redis.RedisError as exc:
            logger.warning(
                "ledger acquire failed card_hash=%s error=%s",
                mask_fingerprint(record.card_fingerprint),
                exc,
            )
            raise LedgerError("failed to create transaction") from exc

        if result == "CONFLICT":
            raise LockConflict(record.card_fingerprint, transaction_id)
        if result == "RECLAIMED":
            raise StaleLockReclaimed(record.card_fingerprint, transaction_id)

    def create(self, record: TransactionRecord) -> None:
        record_key = self._record_key(record.transaction_id)
        index_key = self._index_key(record.card_fingerprint)
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.hset(
                record_key,
                mapping={
                    "transaction_id": record.transaction_id,
                    "card_fingerprint": record.card_fingerprint,
                    "created_at": record.created_at,
                    "expires_at": record.expires_at,
                },
            )
            pipe.set(index_key, record.transaction_id)
            pipe.expire(record_key, self.retention_seconds)
            pipe.expire(index_key, self.retention_seconds)
            pipe.execute()
        except redis.RedisError as exc:
            raise LedgerError("failed to create transaction") from exc

    def get(self, transaction_id: str) -> TransactionRecord | None:
        try:
            values = self.client.hgetall(self._record_key(transaction_id))
        except redis.RedisError as exc:
            raise LedgerError("failed to get transaction") from exc
        if not values:
            return None
        return TransactionRecord(
            transaction_id=values["transaction_id"],
            card_fingerprint=values["card_fingerprint"],
            created_at=int(values["created_at"]),
            expires_at=int(values["expires_at"]),
        )

    def find_by_fingerprint(self, card_fingerprint: str) -> TransactionRecord | None:
        try:
            transaction_id = self.client.get(self._index_key(card_fingerprint))
        except redis.RedisError as exc:
            raise LedgerError("failed to query by card fingerprint") from exc
        if transaction_id is None:
            return None
        return self.get(transaction_id)

    def delete(self, transaction_id: str) -> None:
        try:
            self._release_script(
                keys=[self._record_key(transaction_id)],
                args=[self.index_prefix, transaction_id],
            )
        except redis.RedisError as exc:
            raise LedgerError("failed to delete transaction") from exc

    def ping(self) -> None:
        try:
            self.client.ping()
        except redis.RedisError as exc:
            raise LedgerError("redis connection issue") from exc
