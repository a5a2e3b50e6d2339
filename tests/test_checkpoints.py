import os
import pytest

from splitvote.engine.core.checkpoints import CheckpointStore, add, subtract
from splitvote.engine.core.clock import BlockClock
from splitvote.engine.storage.db import StorageDB
from splitvote.protocol.types.common import FutureLookup, InvariantViolation
from splitvote.protocol.config.params import MAX_CHECKPOINT_VALUE


@pytest.fixture
def store(clock):
    return CheckpointStore(clock)


def test_empty_key_reads_zero(store, clock):
    assert store.latest("k") == 0
    assert store.num_checkpoints("k") == 0
    clock.advance(5)
    assert store.at("k", 3) == 0


def test_same_time_writes_collapse(store):
    store.push("k", 1, 10)
    old, new = store.push("k", 1, 25)
    assert (old, new) == (10, 25)
    assert store.num_checkpoints("k") == 1
    assert store.latest("k") == 25


def test_new_time_appends(store):
    store.push("k", 1, 10)
    store.push("k", 4, 30)
    assert [(c.time, c.value) for c in store.trace("k")] == [(1, 10), (4, 30)]
    assert store.checkpoint("k", 1).value == 30
    with pytest.raises(IndexError):
        store.checkpoint("k", 2)


def test_time_going_backwards_is_fatal(store):
    store.push("a", 5, 1)
    # Time is shared by every key
    with pytest.raises(InvariantViolation):
        store.push("b", 4, 1)
    assert store.num_checkpoints("b") == 0


def test_value_outside_width_is_fatal(store):
    store.push("k", 1, MAX_CHECKPOINT_VALUE)
    with pytest.raises(InvariantViolation):
        store.push("k", 1, MAX_CHECKPOINT_VALUE + 1)
    with pytest.raises(InvariantViolation):
        store.push("k", 1, -1)
    assert store.latest("k") == MAX_CHECKPOINT_VALUE


def test_lookup_returns_greatest_time_not_after_query(store, clock):
    store.push("k", 2, 20)
    store.push("k", 5, 50)
    store.push("k", 9, 90)
    clock.set(20)

    assert store.at("k", 1) == 0
    assert store.at("k", 2) == 20
    assert store.at("k", 4) == 20
    assert store.at("k", 5) == 50
    assert store.at("k", 8) == 50
    assert store.at("k", 19) == 90


def test_lookup_at_or_after_now_is_rejected(store, clock):
    clock.set(10)
    with pytest.raises(FutureLookup) as exc:
        store.at("k", 10)
    assert exc.value.current == 10
    with pytest.raises(FutureLookup):
        store.at("k", 11)


def test_recent_biased_lookup_on_long_trace(store, clock):
    for t in range(1, 101):
        store.push("k", t * 2, t)
    clock.set(1000)

    for query in range(0, 205):
        expected = min(query // 2, 100)
        assert store.at("k", query) == expected, f"query {query}"


def test_apply_delta(store):
    store.apply_delta("k", add, 70)
    store.apply_delta("k", subtract, 20)
    assert store.latest("k") == 50
    assert store.num_checkpoints("k") == 1
    with pytest.raises(InvariantViolation):
        store.apply_delta("k", subtract, 51)
    assert store.latest("k") == 50


def test_persist_and_load(tmp_path):
    db = StorageDB(os.path.join(tmp_path, "state.db"))
    clock = BlockClock(height=1)
    store = CheckpointStore(clock, db=db)

    store.push("a", 1, 5)
    store.push("a", 1, 7)
    store.push("b", 3, 2**200)
    store.push("a", 4, 9)
    assert store.persist() == 3
    assert store.persist() == 0

    reloaded = CheckpointStore(BlockClock(height=10), db=db)
    reloaded.load()
    assert [(c.time, c.value) for c in reloaded.trace("a")] == [(1, 7), (4, 9)]
    assert reloaded.latest("b") == 2**200
    assert reloaded.last_time == 4
    with pytest.raises(InvariantViolation):
        reloaded.push("c", 3, 1)
    db.close()
