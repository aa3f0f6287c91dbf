"""
Shared plumbing for view controllers.

View controllers live on the UI thread and never touch the store directly.
Each operation is handed to a Spawner as a background unit of work that
reports through a fresh result channel; the controller polls that channel
once per redraw tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, TypeVar

from registry_engine.channel import Outcome, Receiver, create_channel, run_to_channel

T = TypeVar("T")

Spawner = Callable[[Callable[[], None]], None]
"""Runs a zero-argument callable somewhere off the UI thread (or inline in tests)."""


def inline_spawner(job: Callable[[], None]) -> None:
    """Run the job immediately on the calling thread."""
    job()


class NoticeKind(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Notice:
    """A banner message handed from a view controller to the application controller."""

    kind: NoticeKind
    message: str

    @classmethod
    def success(cls, message: str) -> "Notice":
        return cls(NoticeKind.SUCCESS, message)

    @classmethod
    def error(cls, message: str) -> "Notice":
        return cls(NoticeKind.ERROR, message)


class OperationSlot(Generic[T]):
    """
    Holds at most one pending background operation.

    States are Idle (no receiver) and Pending (receiver held). Starting a new
    operation while Pending closes the previous receiver, so the replaced
    operation's completion is discarded by its sender and never absorbed.

    Attributes
    ----------
    sequence:
        Monotonic request number of the most recently started operation.
        Informational only. Closing the receiver is what drops stale results.
    """

    def __init__(self, spawn: Spawner) -> None:
        self._spawn = spawn
        self._receiver: Receiver[Outcome[T]] | None = None
        self.sequence = 0

    @property
    def pending(self) -> bool:
        return self._receiver is not None

    def start(self, work: Callable[[], T], *, error_prefix: str) -> int:
        """
        Spawn `work` and make its channel the one polled by this slot.

        Returns
        -------
        int
            The request sequence number assigned to this operation.
        """
        self.cancel()
        sender, receiver = create_channel()
        self.sequence += 1
        self._receiver = receiver
        self._spawn(lambda: run_to_channel(sender, work, error_prefix=error_prefix))
        return self.sequence

    def poll(self) -> Outcome[T] | None:
        """
        Non-blocking check for the pending operation's outcome.

        The first outcome returns the slot to Idle; later polls return None
        until another operation is started.
        """
        receiver = self._receiver
        if receiver is None:
            return None
        outcome = receiver.try_receive()
        if outcome is None:
            return None
        receiver.close()
        self._receiver = None
        return outcome

    def cancel(self) -> None:
        """Stop listening for the pending operation. The work itself still runs."""
        if self._receiver is not None:
            self._receiver.close()
            self._receiver = None
