"""Ledger backend selection."""

import pytest

from skyfox.common.config import CommonSettings
from skyfox.services.payment_gateway.backends import build_ledger
from skyfox.services.payment_gateway.ledger import InMemoryLedger
from skyfox.services.payment_gateway.redis_ledger import RedisLedger
from skyfox.services.payment_gateway.sql_ledger import SqlLedger


def make_settings(**overrides) -> CommonSettings:
    return CommonSettings(**{"ledger_backend": "memory", **overrides})


@pytest.mark.parametrize(
    "backend, ledger_type",
    [("memory", InMemoryLedger), ("postgres", SqlLedger), ("redis", RedisLedger), ("REDIS", RedisLedger)],
)
def test_backend_by_name(backend, ledger_type):
    assert isinstance(build_ledger(make_settings(ledger_backend=backend)), ledger_type)


def test_unknown_backend():
    with pytest.raises(ValueError, match="unknown ledger backend"):
        build_ledger(make_settings(ledger_backend="dynamo"))


@pytest.mark.parametrize("backend", ["memory", "redis"])
def test_retention_shorter_than_ttl_is_refused(backend):
    with pytest.raises(ValueError, match="ledger_retention_seconds"):
        build_ledger(make_settings(ledger_backend=backend, transaction_ttl_seconds=300, ledger_retention_seconds=120))


def test_retention_equal_to_ttl_is_allowed():
    ledger = build_ledger(make_settings(ledger_backend="redis", transaction_ttl_seconds=300, ledger_retention_seconds=300))
    assert ledger.retention_seconds == 300
