"""Redis ledger adapter: Lua scripts against fakeredis, error paths against a mock."""

from unittest.mock import MagicMock

import fakeredis
import pytest
import redis

from skyfox.services.payment_gateway.errors import LedgerError, LockConflict, StaleLockReclaimed
from skyfox.services.payment_gateway.ledger import TransactionRecord
from skyfox.services.payment_gateway.redis_ledger import ACQUIRE_LUA, RELEASE_LUA, RedisLedger


RECORD = TransactionRecord(transaction_id="tx-1", card_fingerprint="fp-1", created_at=100, expires_at=400)


@pytest.fixture
def client():
    client = MagicMock()
    scripts = {ACQUIRE_LUA: MagicMock(name="acquire"), RELEASE_LUA: MagicMock(name="release")}
    client.register_script.side_effect = lambda source: scripts[source]
    client.scripts = scripts
    return client


@pytest.fixture
def ledger(client):
    return RedisLedger(client, retention_seconds=3600)


def test_acquire_passes_keys_and_record_to_script(client, ledger):
    acquire = client.scripts[ACQUIRE_LUA]
    acquire.return_value = ["ACQUIRED", "tx-1"]

    ledger.acquire(RECORD)

    acquire.assert_called_once_with(
        keys=["skyfox:card:fp-1", "skyfox:txn:tx-1"],
        args=["tx-1", "fp-1", 100, 400, "skyfox:txn:", 3600],
    )


def test_acquire_conflict(client, ledger):
    client.scripts[ACQUIRE_LUA].return_value = ["CONFLICT", "tx-0"]
    with pytest.raises(LockConflict) as exc_info:
        ledger.acquire(RECORD)
    assert exc_info.value.holder_transaction_id == "tx-0"


def test_acquire_reclaimed(client, ledger):
    client.scripts[ACQUIRE_LUA].return_value = ["RECLAIMED", "tx-0"]
    with pytest.raises(StaleLockReclaimed) as exc_info:
        ledger.acquire(RECORD)
    assert exc_info.value.stale_transaction_id == "tx-0"


def test_acquire_connection_error(client, ledger):
    client.scripts[ACQUIRE_LUA].side_effect = redis.ConnectionError("connection refused")
    with pytest.raises(LedgerError) as exc_info:
        ledger.acquire(RECORD)
    assert "connection refused" not in str(exc_info.value)


def test_get_parses_hash(client, ledger):
    client.hgetall.return_value = {
        "transaction_id": "tx-1",
        "card_fingerprint": "fp-1",
        "created_at": "100",
        "expires_at": "400",
    }
    assert ledger.get("tx-1") == RECORD
    client.hgetall.assert_called_once_with("skyfox:txn:tx-1")


def test_find_by_fingerprint_missing(client, ledger):
    client.get.return_value = None
    assert ledger.find_by_fingerprint("fp-1") is None
    client.hgetall.assert_not_called()


def test_find_by_fingerprint_follows_index(client, ledger):
    client.get.return_value = "tx-1"
    client.hgetall.return_value = {
        "transaction_id": "tx-1",
        "card_fingerprint": "fp-1",
        "created_at": "100",
        "expires_at": "400",
    }
    assert ledger.find_by_fingerprint("fp-1") == RECORD
    client.get.assert_called_once_with("skyfox:card:fp-1")


def test_delete_runs_release_script(client, ledger):
    ledger.delete("tx-1")
    client.scripts[RELEASE_LUA].assert_called_once_with(
        keys=["skyfox:txn:tx-1"],
        args=["skyfox:card:", "tx-1"],
    )


def test_delete_error(client, ledger):
    client.scripts[RELEASE_LUA].side_effect = redis.TimeoutError("timeout")
    with pytest.raises(LedgerError):
        ledger.delete("tx-1")


def test_ping_error(client, ledger):
    client.ping.side_effect = redis.ConnectionError("down")
    with pytest.raises(LedgerError):
        ledger.ping()


def card_record(transaction_id: str, created_at: int, fp: str = "fp-1") -> TransactionRecord:
    return TransactionRecord(transaction_id, fp, created_at=created_at, expires_at=created_at + 300)


@pytest.fixture
def server():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def live_ledger(server):
    return RedisLedger(server, retention_seconds=3600)


def test_lock_lifecycle_through_scripts(server, live_ledger):
    live_ledger.acquire(card_record("tx-1", 1000))
    assert live_ledger.find_by_fingerprint("fp-1") == card_record("tx-1", 1000)

    with pytest.raises(LockConflict) as conflict:
        live_ledger.acquire(card_record("tx-2", 1100))
    assert conflict.value.holder_transaction_id == "tx-1"
    assert live_ledger.get("tx-2") is None

    with pytest.raises(StaleLockReclaimed) as reclaimed:
        live_ledger.acquire(card_record("tx-3", 1400))
    assert reclaimed.value.stale_transaction_id == "tx-1"
    assert live_ledger.find_by_fingerprint("fp-1") is None
    assert live_ledger.get("tx-1") is None
    assert live_ledger.get("tx-3") is None

    live_ledger.acquire(card_record("tx-4", 1500))
    assert live_ledger.find_by_fingerprint("fp-1").transaction_id == "tx-4"

    live_ledger.delete("tx-4")
    assert server.get("skyfox:card:fp-1") is None
    assert server.exists("skyfox:txn:tx-4") == 0


def test_record_expiring_now_is_still_live(live_ledger):
    live_ledger.acquire(card_record("tx-1", 1000))
    with pytest.raises(LockConflict):
        live_ledger.acquire(card_record("tx-2", 1300))


def test_acquired_keys_carry_retention(server, live_ledger):
    live_ledger.acquire(card_record("tx-1", 1000))
    assert 0 < server.ttl("skyfox:txn:tx-1") <= 3600
    assert 0 < server.ttl("skyfox:card:fp-1") <= 3600


def test_release_leaves_index_owned_by_another_attempt(server, live_ledger):
    live_ledger.acquire(card_record("tx-1", 1000))
    server.hset(
        "skyfox:txn:tx-0",
        mapping={"transaction_id": "tx-0", "card_fingerprint": "fp-1", "created_at": 1, "expires_at": 301},
    )

    live_ledger.delete("tx-0")

    assert server.exists("skyfox:txn:tx-0") == 0
    assert server.get("skyfox:card:fp-1") == "tx-1"


def test_dangling_index_is_replaced(server, live_ledger):
    server.set("skyfox:card:fp-1", "tx-gone")
    live_ledger.acquire(card_record("tx-1", 1000))
    assert server.get("skyfox:card:fp-1") == "tx-1"


def test_cards_do_not_share_locks(live_ledger):
    live_ledger.acquire(card_record("tx-1", 1000, fp="fp-1"))
    live_ledger.acquire(card_record("tx-2", 1000, fp="fp-2"))
    assert live_ledger.find_by_fingerprint("fp-2").transaction_id == "tx-2"
