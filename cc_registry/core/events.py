from typing import Any, Iterator

from pydantic import BaseModel, Field

from cc_registry.core.models.base import EventTypes


class Event(BaseModel):
    name: EventTypes
    source: str
    block_number: int
    timestamp: int
    attributes: dict[str, Any] = Field(default_factory=dict)


class EventLog:
    """Append-only record of the notifications emitted by the exchange.

    Events are part of the transactional state: when an operation unwinds,
    the events it emitted are discarded with it.
    """

    def __init__(self) -> None:
        self._events: list[Event] = []

    def append(self, event: Event) -> Event:
        self._events.append(event)
        return event

    def filter(
        self,
        name: EventTypes | str | None = None,
        source: str | None = None,
    ) -> list[Event]:
        if name is not None:
            name = EventTypes(name)
        return [
            event
            for event in self._events
            if (name is None or event.name == name)
            and (source is None or event.source == source)
        ]

    def last(self, name: EventTypes | str | None = None) -> Event | None:
        matching = self.filter(name=name)
        return matching[-1] if matching else None

    def __iter__(self) -> Iterator[Event]:
        return iter(list(self._events))

    def __len__(self) -> int:
        return len(self._events)

    def _truncate(self, length: int) -> None:
        del self._events[length:]
