import pytest

from splitvote.engine.core.clock import BlockClock
from splitvote.engine.core.events import EventBus
from splitvote.engine.core.ledger import TokenLedger
from splitvote.protocol.crypto.addresses import address_from_bytes
from splitvote.protocol.types.common import EventType


def addr(n: int) -> str:
    """Address whose payload is 20 bytes of `n`: addr(1) < addr(2) < ..."""
    return address_from_bytes(bytes([n]) * 20)


class EventRecorder:
    """Collects every engine event in emission order."""

    def __init__(self, bus: EventBus):
        self.events = []
        for event_type in EventType:
            bus.subscribe(event_type.value, self._make_listener(event_type.value))

    def _make_listener(self, name):
        def listener(**data):
            self.events.append((name, data))
        return listener

    def of(self, event_type: EventType):
        return [data for name, data in self.events if name == event_type.value]

    def names(self):
        return [name for name, _ in self.events]

    def clear(self):
        self.events.clear()


@pytest.fixture
def clock():
    return BlockClock(height=1)


@pytest.fixture
def bus():
    bus = EventBus()
    yield bus
    bus.clear()


@pytest.fixture
def recorder(bus):
    return EventRecorder(bus)


@pytest.fixture
def ledger(clock, bus):
    return TokenLedger(clock=clock, bus=bus)
