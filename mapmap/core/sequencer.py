"""FIFO ordering of asynchronous operations.

Work submitted to a Sequencer starts right away, but the ticket handed back to
the caller settles strictly in submission order: ticket N resolves only after
ticket N-1 has settled and N's own work is done. A failed ticket rejects with
its own exception and does not hold up the tickets behind it.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _call(factory: Callable[[], Awaitable[T]]) -> T:
    """Run a task factory, turning synchronous raises into a failed awaitable."""
    return await factory()


async def _wait_for(awaitable: Awaitable[T]) -> T:
    return await awaitable


def _schedule(work: Awaitable[T] | Callable[[], Awaitable[T]]) -> asyncio.Future:
    """Start work on the running loop and return its future."""
    if isinstance(work, asyncio.Future):
        return work
    loop = asyncio.get_running_loop()
    if callable(work):
        return loop.create_task(_call(work))
    if inspect.iscoroutine(work):
        return loop.create_task(work)
    if inspect.isawaitable(work):
        return loop.create_task(_wait_for(work))
    raise TypeError(f"Expected an awaitable or a callable returning one, got {type(work).__name__}")


class Sequencer:
    """Orders the completion of concurrently running asynchronous operations.

    One instance exists per logical stream (e.g. geometry loads, data loads)
    of a map. Must be used from inside a running event loop.
    """

    def __init__(self, name: str = "sequencer"):
        """
        Initialize sequencer.

        Args:
            name: Name used in log messages
        """
        self.name = name
        self._tail: asyncio.Future | None = None
        self._submitted = 0
        self._pending = 0

    @property
    def pending(self) -> int:
        """Number of tickets submitted but not yet settled."""
        return self._pending

    def __len__(self) -> int:
        return self._pending

    def submit(
        self,
        task: Awaitable[T] | Callable[[], Awaitable[T]],
        on_turn: Callable[[Any], Any] | None = None,
    ) -> asyncio.Task:
        """
        Start a task and return a ticket that settles in submission order.

        Args:
            task: An awaitable, or a zero-argument callable returning one.
                  The work is started immediately.
            on_turn: Optional callback run with the task's result once the
                     ticket's turn has come. Its return value (awaited if
                     awaitable) becomes the ticket's result.

        Returns:
            Ticket resolving with the task's (or on_turn's) result, or
            rejecting with the task's exception
        """
        work = _schedule(task)
        return self._enqueue(work, on_turn)

    def chain(self, awaitable: Awaitable[T], on_turn: Callable[[Any], Any] | None = None) -> asyncio.Task:
        """
        Add an external awaitable to this sequence.

        Used to order one sequencer behind another: chaining a geometry ticket
        onto the data sequencer makes later data tickets wait for it. The
        external awaitable is shielded, so cancelling this ticket leaves it
        running.

        Args:
            awaitable: Awaitable owned elsewhere (e.g. another sequencer's ticket)
            on_turn: Optional callback, see submit()

        Returns:
            Ticket settling after the awaitable and after this sequencer's
            previous ticket
        """
        work = asyncio.shield(_schedule(awaitable))
        return self._enqueue(work, on_turn)

    async def settled(self) -> asyncio.Future | None:
        """
        Wait for every ticket submitted so far to settle, without raising.

        Tickets submitted while waiting are waited for as well.

        Returns:
            The last ticket, None if nothing was submitted
        """
        tail = None
        while self._tail is not None and tail is not self._tail:
            tail = self._tail
            await asyncio.wait([tail])
        return tail

    async def ready(self) -> Any:
        """
        Wait for every ticket submitted so far.

        Returns:
            Result of the most recently submitted ticket, None if nothing was submitted

        Raises:
            Exception: The most recent ticket's exception, if it failed
        """
        tail = await self.settled()
        if tail is None:
            return None
        return tail.result()

    def _enqueue(self, work: asyncio.Future, on_turn) -> asyncio.Task:
        predecessor = self._tail
        self._submitted += 1
        number = self._submitted
        ticket = asyncio.get_running_loop().create_task(
            self._turn(number, predecessor, work, on_turn),
            name=f"{self.name}-{number}",
        )
        self._tail = ticket
        self._pending += 1
        ticket.add_done_callback(self._settled)
        logger.debug(f"{self.name}: submitted ticket {number}")
        return ticket

    async def _turn(self, number: int, predecessor: asyncio.Future | None, work: asyncio.Future, on_turn):
        if predecessor is not None:
            # Wait for the predecessor to settle, whatever its outcome
            await asyncio.wait([predecessor])
        result = await work
        if on_turn is not None:
            result = on_turn(result)
            if inspect.isawaitable(result):
                result = await result
        logger.debug(f"{self.name}: ticket {number} resolved")
        return result

    def _settled(self, ticket: asyncio.Task) -> None:
        self._pending -= 1
        if ticket.cancelled():
            logger.debug(f"{self.name}: ticket {ticket.get_name()} cancelled")
            return
        error = ticket.exception()
        if error is not None:
            logger.warning(f"{self.name}: ticket {ticket.get_name()} failed: {error!r}")
