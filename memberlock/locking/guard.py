"""
Re-entrancy guard and atomic sections for the locker engines.

Every mutating engine call runs inside an ``AtomicSection``:

- the engine's ``ReentrancyGuard`` is held for the whole call. Independent
  calls queue on its lock and run one after another, while a call arriving
  from inside the in-flight one (a collaborator calling back into the
  engine) fails immediately;
- every checkpointable participant is snapshotted on entry and restored, in
  reverse order, if the call raises;
- a correlation id is bound for the call so its log lines can be grouped;
- events queued during the call are published only after it committed.
"""

import asyncio
from collections.abc import Iterable
from contextlib import ExitStack
from contextvars import ContextVar, Token
from typing import Any

from memberlock.core.events import EventPublisher, LockerEvent
from memberlock.core.exceptions import ReentrancyError
from memberlock.core.logging import correlation_context, get_logger

from .interfaces import CheckpointableProtocol, JournalingProtocol

logger = get_logger(__name__)

# Guards held by the call running in the current context
_held_guards: ContextVar[frozenset] = ContextVar("memberlock_held_guards", default=frozenset())


class ReentrancyGuard:
    """Non-reentrant exclusive lock.

    Callers from other tasks wait for the holder to finish. A caller whose
    context already holds the guard is a nested call and is refused.
    """

    def __init__(self, name: str):
        self._name = name
        self._lock = asyncio.Lock()
        self._operation: str | None = None

    @property
    def entered(self) -> bool:
        return self._operation is not None

    @property
    def operation(self) -> str | None:
        return self._operation

    def held_here(self) -> bool:
        """Whether the call running in the current context holds the guard."""
        return self in _held_guards.get()

    async def acquire(self, operation: str) -> Token:
        if self.held_here():
            raise ReentrancyError(
                f"{operation} entered while {self._operation} is in flight",
                lock_name=self._name,
                state_component=self._name,
            )
        await self._lock.acquire()
        self._operation = operation
        return _held_guards.set(_held_guards.get() | {self})

    def release(self, token: Token) -> None:
        _held_guards.reset(token)
        self._operation = None
        self._lock.release()


class AtomicSection:
    """Async context manager giving one engine call all-or-nothing semantics."""

    def __init__(
        self,
        guard: ReentrancyGuard,
        participants: Iterable[Any],
        publisher: EventPublisher | None,
        operation: str,
    ):
        self._guard = guard
        self._participants = [p for p in participants if isinstance(p, CheckpointableProtocol)]
        self._publisher = publisher
        self._operation = operation
        self._snapshots: list[tuple[CheckpointableProtocol, Any]] = []
        self._events: list[LockerEvent] = []
        self._guard_token: Token | None = None
        self._scope = ExitStack()
        self.correlation_id: str | None = None

    def emit(self, event: LockerEvent) -> None:
        """Queue an event for publication once the section commits."""
        self._events.append(event)

    @property
    def pending_events(self) -> list[LockerEvent]:
        return list(self._events)

    async def __aenter__(self) -> "AtomicSection":
        self._guard_token = await self._guard.acquire(self._operation)
        try:
            # An id bound by the caller is kept so nested work shares it
            self.correlation_id = self._scope.enter_context(
                correlation_context.correlation_context(correlation_context.get_correlation_id())
            )
            self._snapshots = [(p, p.snapshot()) for p in self._participants]
        except BaseException:
            self._scope.close()
            self._release()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            try:
                if exc_type is not None:
                    for participant, state in reversed(self._snapshots):
                        participant.restore(state)
                    self._events.clear()
                    logger.warning(
                        "Operation rolled back",
                        operation=self._operation,
                        error_type=exc_type.__name__,
                        participants=len(self._snapshots),
                    )
                    return False
                for participant, state in reversed(self._snapshots):
                    if isinstance(participant, JournalingProtocol):
                        participant.commit(state)
            finally:
                self._snapshots = []
                self._release()

            if self._publisher is not None:
                for event in self._events:
                    await self._publisher.publish(event)
            return False
        finally:
            self._scope.close()

    def _release(self) -> None:
        token, self._guard_token = self._guard_token, None
        if token is not None:
            self._guard.release(token)
