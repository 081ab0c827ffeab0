"""Ledger backend selection from settings."""

import redis

from skyfox.common.config import CommonSettings
from skyfox.common.db import SessionLocal
from skyfox.services.payment_gateway.ledger import InMemoryLedger, Ledger
from skyfox.services.payment_gateway.redis_ledger import RedisLedger
from skyfox.services.payment_gateway.sql_ledger import SqlLedger


def build_ledger(config: CommonSettings) -> Ledger:
    """Return the ledger adapter named by `LEDGER_BACKEND`."""

    backend = config.ledger_backend.lower()
    if config.ledger_retention_seconds < config.transaction_ttl_seconds:
        # Shorter retention would evict live locks before they expire.
        raise ValueError(
            "ledger_retention_seconds must be at least transaction_ttl_seconds "
            f"({config.ledger_retention_seconds} < {config.transaction_ttl_seconds})"
        )
    if backend == "postgres":
        return SqlLedger(SessionLocal)
    if backend == "redis":
        client = redis.Redis.from_url(config.redis_url, decode_responses=True)
        return RedisLedger(client, retention_seconds=config.ledger_retention_seconds)
    if backend == "memory":
        return InMemoryLedger()
    raise ValueError(f"unknown ledger backend: {config.ledger_backend}")
