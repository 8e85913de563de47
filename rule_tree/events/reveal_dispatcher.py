"""
Reveal Dispatcher

Delivers reveal events to presentation listeners once the mutation that
produced them has been committed.
"""

import logging
from collections import deque
from typing import Callable, Deque, Iterable, List

from rule_tree.models import RevealEvent

RevealListener = Callable[[RevealEvent], None]


class RevealDispatcher:
    """
    Registry of reveal listeners.

    Events are queued and delivered in order. An event published while
    another is being delivered is appended to the queue, so a listener that
    issues a new command never observes a half-delivered batch.
    """

    def __init__(self):
        """Initialize the dispatcher."""
        self.listeners: List[RevealListener] = []
        self.logger = logging.getLogger("RevealDispatcher")
        self._pending: Deque[RevealEvent] = deque()
        self._delivering = False

    def subscribe(self, listener: RevealListener) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Callable receiving each RevealEvent

        Returns:
            Function that removes the listener again
        """
        if not callable(listener):
            raise ValueError(f"{listener!r} is not callable")

        self.listeners.append(listener)
        self.logger.debug(f"Registered reveal listener: {listener!r}")

        def unsubscribe() -> None:
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    def publish(self, events: Iterable[RevealEvent]) -> int:
        """
        Queue events and deliver everything pending.

        Args:
            events: Events of a committed command

        Returns:
            Number of events delivered by this call
        """
        self._pending.extend(events)
        if self._delivering:
            return 0

        delivered = 0
        self._delivering = True
        try:
            while self._pending:
                event = self._pending.popleft()
                for listener in list(self.listeners):
                    try:
                        listener(event)
                    except Exception:
                        self.logger.exception(f"Reveal listener failed for {event.node_type.value} {event.node_id}")
                delivered += 1
        finally:
            self._delivering = False

        return delivered
