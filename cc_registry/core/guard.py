import functools
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from cc_registry.core.errors import ReentrantCallError
from cc_registry.logging_config import logger

F = TypeVar("F", bound=Callable[..., Any])


class ReentrancyGuard:
    """Per-instance exclusive marker held for the duration of a state-changing call."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = threading.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @contextmanager
    def hold(self) -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            logger.warning(f"Rejected reentrant call into {self.name}")
            raise ReentrantCallError(f"Reentrant call into {self.name}")
        try:
            yield
        finally:
            self._lock.release()


def nonreentrant(method: F) -> F:
    """Run a component method under its reentrancy guard and inside a chain
    transaction, so that a failure anywhere unwinds every write it made.

    The decorated instance must expose `_guard` and `chain`.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._guard.hold(), self.chain.transaction():
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
