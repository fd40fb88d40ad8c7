from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreEvent:
    action: str  # created | updated | deleted | replaced | switched
    entity: str  # version | branch
    entity_id: str | None = None


Listener = Callable[[StoreEvent], None]


class Observable:
    """Observer list for read-side consumers of store mutations."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, action: str, entity: str, entity_id: str | None = None) -> None:
        event = StoreEvent(action=action, entity=entity, entity_id=entity_id)
        logger.debug("store event %s", event)
        # listener failures are logged; the mutation stands
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Store listener %r failed on %s", listener, event)
