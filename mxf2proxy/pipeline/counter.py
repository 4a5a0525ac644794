import threading

from mxf2proxy.domain.events import ClipCountChanged
from mxf2proxy.infrastructure.event_bus import EventBus


class OutstandingClips:
    """Aggregate number of clips submitted but not yet finished.

    Never negative. Every change is published as ClipCountChanged.
    """

    def __init__(self, event_bus: EventBus):
        self.event_bus = event_bus
        self._value = 0
        self._lock = threading.Lock()

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def add(self, count: int):
        self._set(lambda v: v + max(0, count))

    def decrement(self):
        self._set(lambda v: max(0, v - 1))

    def reset(self):
        self._set(lambda v: 0)

    def _set(self, update):
        with self._lock:
            self._value = update(self._value)
            value = self._value
        self.event_bus.publish(ClipCountChanged(outstanding=value))
