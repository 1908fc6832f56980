"""Last-request-wins coordination for asynchronous recomputation.

Each request takes a ticket carrying a generation number drawn from one
counter shared by every key, so a generation is never handed out twice. A
result is applied only if its ticket is still the newest one for its key.
Settled keys are forgotten, which keeps the guard's size bounded by the
number of requests in flight. There is a single logical writer, so no
locking is needed.
"""
from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import Hashable, TypeVar

from ..errors import ErrorKind, Ok, Result, err

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Ticket:
    key: Hashable
    generation: int


class StalenessGuard:
    def __init__(self) -> None:
        self._latest: dict[Hashable, int] = {}
        self._generations = itertools.count(1)

    def __len__(self) -> int:
        return len(self._latest)

    def issue(self, key: Hashable) -> Ticket:
        generation = next(self._generations)
        self._latest[key] = generation
        return Ticket(key, generation)

    def is_current(self, ticket: Ticket) -> bool:
        return self._latest.get(ticket.key) == ticket.generation

    def release(self, ticket: Ticket) -> None:
        """Forget ``ticket``'s key if nothing newer was issued for it."""
        if self.is_current(ticket):
            del self._latest[ticket.key]

    def accept(self, ticket: Ticket, value: T) -> Result[T]:
        """Pass ``value`` through if ``ticket`` is current, else report it stale.

        A current ticket is settled by this call and its key released.
        """
        if self.is_current(ticket):
            self.release(ticket)
            return Ok(value)
        logger.debug(
            "Dropping stale result for %s (generation %d, latest %s)",
            ticket.key,
            ticket.generation,
            self._latest.get(ticket.key),
        )
        return err(ErrorKind.STALE_RESULT, f"superseded request for {ticket.key}")

    def invalidate(self, key: Hashable) -> None:
        """Make every outstanding ticket for ``key`` stale."""
        self._latest.pop(key, None)
