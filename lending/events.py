"""
events.py - Loan Notifications

Events are just data, listeners are just functions:
1. Borrowed / Repaid: immutable payloads emitted by the lending pool
2. EventLog: append-only record of emitted events plus synchronous listeners

Field order of the payloads is part of the public contract.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Iterator, List, Optional, Type, TypeVar, Union

from .core import Timestamp


# ============================================================================
# EVENT PAYLOADS
# ============================================================================

@dataclass(frozen=True, slots=True)
class Borrowed:
    """A borrower opened a loan of amount at ledger time timestamp."""
    borrower: str
    amount: Decimal
    timestamp: Timestamp


@dataclass(frozen=True, slots=True)
class Repaid:
    """A borrower closed their loan by paying total_due at ledger time timestamp."""
    borrower: str
    total_due: Decimal
    timestamp: Timestamp


LoanEvent = Union[Borrowed, Repaid]

# Listener type: called once per emitted event
EventListener = Callable[[LoanEvent], None]

E = TypeVar("E", Borrowed, Repaid)


# ============================================================================
# EVENT LOG
# ============================================================================

class EventLog:
    """
    Ordered record of loan events.

    Listeners run synchronously inside emit(), after the event is recorded.
    Any exception a listener raises propagates unchanged to the emitter.

    The log is unbounded: events are never evicted, like a ledger's
    transaction_log.
    """

    def __init__(self):
        self._events: List[LoanEvent] = []
        self._listeners: List[EventListener] = []

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """
        Register a listener. Returns a function that unregisters it.

        Example:
            seen = []
            unsubscribe = pool.events.subscribe(seen.append)
            pool.borrow("alice", 10)
            unsubscribe()
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: LoanEvent) -> None:
        """Record event, then notify listeners in subscription order."""
        self._events.append(event)
        for listener in list(self._listeners):
            listener(event)

    def of_type(self, event_type: Type[E]) -> List[E]:
        """All recorded events of one payload type, in emission order."""
        return [e for e in self._events if isinstance(e, event_type)]

    def for_borrower(self, borrower: str) -> List[LoanEvent]:
        return [e for e in self._events if e.borrower == borrower]

    def last(self) -> Optional[LoanEvent]:
        return self._events[-1] if self._events else None

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[LoanEvent]:
        return iter(list(self._events))
