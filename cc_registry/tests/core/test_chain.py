import pytest

from cc_registry.core.chain import Chain
from cc_registry.core.errors import ReentrantCallError
from cc_registry.core.guard import ReentrancyGuard
from cc_registry.core.models.base import EventTypes


class Owned:
    def __init__(self, owner: str):
        self.owner = owner


class TestChain:
    def test_clock_must_be_positive(self):
        with pytest.raises(ValueError):
            Chain(timestamp=0)

    def test_mine_advances_position_and_clock(self, chain):
        assert chain.mine() == 2
        assert chain.now == 1_700_000_012
        chain.mine(blocks=3, seconds=5)
        assert chain.block_number == 5
        assert chain.now == 1_700_000_017

    def test_travel_seals_a_block(self, chain):
        chain.travel(3600)
        assert chain.block_number == 2
        assert chain.now == 1_700_003_600

    def test_clock_cannot_move_backwards(self, chain):
        with pytest.raises(ValueError):
            chain.mine(seconds=-1)

    def test_failed_transaction_restores_state_and_events(self, chain):
        store = {"kept": 1, "changed": 2, "removed": 3}
        owned = Owned("a")

        with pytest.raises(RuntimeError):
            with chain.transaction():
                chain.write(store, "changed", 20)
                chain.write(store, "added", 4)
                chain.delete(store, "removed")
                chain.assign(owned, "owner", "b")
                chain.emit(EventTypes.ISSUED, "0x00", credit_id="0x01")
                raise RuntimeError("boom")

        assert store == {"kept": 1, "changed": 2, "removed": 3}
        assert owned.owner == "a"
        assert len(chain.events) == 0
        assert not chain.in_transaction

    def test_rollback_puts_back_the_same_objects(self, chain):
        record = object()
        store = {"key": record}

        with pytest.raises(RuntimeError):
            with chain.transaction():
                chain.write(store, "key", object())
                chain.write(store, "key", object())
                raise RuntimeError("boom")

        assert store["key"] is record

    def test_nested_failure_only_unwinds_inner(self, chain):
        store = {}

        with chain.transaction():
            chain.write(store, "value", 1)
            with pytest.raises(RuntimeError):
                with chain.transaction():
                    chain.write(store, "value", 2)
                    chain.write(store, "inner", True)
                    raise RuntimeError("inner")
            assert store == {"value": 1}

        assert store == {"value": 1}

    def test_journal_cleared_after_commit(self, chain):
        store = {}

        with chain.transaction():
            chain.write(store, "value", 1)
            chain.emit(EventTypes.ISSUED, "0x00", credit_id="0x01")
            assert len(chain._journal) == 2

        assert chain._journal == []
        assert store == {"value": 1}
        assert len(chain.events) == 1

    def test_writes_outside_transaction_are_not_journaled(self, chain):
        store = {}
        chain.write(store, "value", 1)
        chain.delete(store, "missing")

        assert store == {"value": 1}
        assert chain._journal == []

    def test_automine_after_outermost_transaction(self):
        chain = Chain(automine=True)
        with chain.transaction():
            with chain.transaction():
                pass
            assert chain.block_number == 1
        assert chain.block_number == 2

    def test_no_automine_after_failure(self):
        chain = Chain(automine=True)
        with pytest.raises(RuntimeError):
            with chain.transaction():
                raise RuntimeError("boom")
        assert chain.block_number == 1

    def test_event_filter(self, chain):
        chain.emit(EventTypes.ISSUED, "a", credit_id="1")
        chain.emit(EventTypes.RETIRED, "a", credit_id="1")
        chain.emit(EventTypes.ISSUED, "b", credit_id="2")

        assert len(chain.events.filter(EventTypes.ISSUED)) == 2
        assert len(chain.events.filter("Issued", source="b")) == 1
        assert chain.events.last(EventTypes.ISSUED).attributes == {"credit_id": "2"}


class TestReentrancyGuard:
    def test_second_hold_is_rejected(self):
        guard = ReentrancyGuard("Test")
        with guard.hold():
            assert guard.locked
            with pytest.raises(ReentrantCallError):
                with guard.hold():
                    pass
        assert not guard.locked

    def test_released_after_exception(self):
        guard = ReentrancyGuard("Test")
        with pytest.raises(KeyError):
            with guard.hold():
                raise KeyError("x")
        assert not guard.locked
