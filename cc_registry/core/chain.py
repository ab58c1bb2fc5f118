"""Ledger context shared by every component of the exchange.

The chain supplies the clock, the current ledger position (block number) and
the network identifier, and gives each operation all-or-nothing semantics.
Components make their writes through `write`, `delete` and `assign`; inside
a transaction each write pushes an undo step onto a journal, and a failed
transaction replays its own steps in reverse. The cost of a rollback is
proportional to what the operation wrote, not to the size of the stores.
"""

import functools
from contextlib import contextmanager
from typing import Any, Callable, Iterator, MutableMapping

from cc_registry.core.events import Event, EventLog
from cc_registry.core.models.base import EventTypes
from cc_registry.logging_config import logger
from cc_registry.settings import settings

_MISSING = object()


def _put_back(store: MutableMapping, key: Any, previous: Any) -> None:
    if previous is _MISSING:
        store.pop(key, None)
    else:
        store[key] = previous


class Chain:
    def __init__(
        self,
        chain_id: int = settings.CHAIN_ID,
        timestamp: int = settings.GENESIS_TIMESTAMP,
        block_number: int = 1,
        block_time: int = settings.BLOCK_TIME_SECONDS,
        automine: bool = settings.AUTOMINE,
    ) -> None:
        if timestamp <= 0:
            raise ValueError("The chain clock must start at a positive timestamp")
        if block_time <= 0:
            raise ValueError("Block time must be positive")

        self.chain_id = chain_id
        self.timestamp = timestamp
        self.block_number = block_number
        self.block_time = block_time
        self.automine = automine
        self.events = EventLog()
        self._journal: list[Callable[[], None]] = []
        self._depth = 0

    @property
    def now(self) -> int:
        return self.timestamp

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    def mine(self, blocks: int = 1, seconds: int | None = None) -> int:
        """Advance the ledger position by `blocks`, moving the clock by
        `seconds` (default: one block time per block)."""
        if blocks < 1:
            raise ValueError("Must mine at least one block")
        if seconds is None:
            seconds = blocks * self.block_time
        if seconds < 0:
            raise ValueError("The chain clock cannot move backwards")

        self.block_number += blocks
        self.timestamp += seconds
        return self.block_number

    def travel(self, seconds: int) -> int:
        """Move the clock forward and seal the jump in a new block."""
        return self.mine(blocks=1, seconds=seconds)

    # Journaled writes

    def _record(self, undo: Callable[[], None]) -> None:
        if self._depth > 0:
            self._journal.append(undo)

    def write(self, store: MutableMapping, key: Any, value: Any) -> None:
        previous = store.get(key, _MISSING)
        store[key] = value
        self._record(functools.partial(_put_back, store, key, previous))

    def delete(self, store: MutableMapping, key: Any) -> None:
        previous = store.pop(key, _MISSING)
        if previous is not _MISSING:
            self._record(functools.partial(_put_back, store, key, previous))

    def assign(self, target: Any, name: str, value: Any) -> None:
        previous = getattr(target, name)
        setattr(target, name, value)
        self._record(functools.partial(setattr, target, name, previous))

    def emit(self, name: EventTypes, source: str, **attributes: Any) -> Event:
        length = len(self.events)
        event = self.events.append(
            Event(
                name=name,
                source=source,
                block_number=self.block_number,
                timestamp=self.timestamp,
                attributes=attributes,
            )
        )
        self._record(functools.partial(self.events._truncate, length))
        logger.debug(f"{name.value} from {source}: {attributes}")
        return event

    @contextmanager
    def transaction(self) -> Iterator["Chain"]:
        mark = len(self._journal)
        self._depth += 1
        try:
            yield self
        except Exception:
            while len(self._journal) > mark:
                self._journal.pop()()
            raise
        finally:
            self._depth -= 1

        if self._depth == 0:
            self._journal.clear()
            if self.automine:
                self.mine()
