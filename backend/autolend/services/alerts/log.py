"""Alert logs that drop events already recorded under the same dedup key."""

import threading
from typing import Iterable, List, Protocol, Set

from autolend.services.rule_engine.base import AlertEvent


class AlertLog(Protocol):
    """Records alert events; returns only the ones not seen before."""

    async def record_new(self, events: Iterable[AlertEvent]) -> List[AlertEvent]:
        ...


class InMemoryAlertLog:
    """
    Process-local alert log.

    Events without a dedup key are always recorded.
    """

    def __init__(self):
        self.records: List[AlertEvent] = []
        self._keys: Set[str] = set()
        self._lock = threading.Lock()

    async def record_new(self, events: Iterable[AlertEvent]) -> List[AlertEvent]:
        fresh: List[AlertEvent] = []
        with self._lock:
            for event in events:
                if event.dedup_key is not None:
                    if event.dedup_key in self._keys:
                        continue
                    self._keys.add(event.dedup_key)
                self.records.append(event)
                fresh.append(event)
        return fresh
