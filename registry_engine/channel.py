"""
Result channel bridge between background work and the UI redraw tick.

Threading model
---------------
- Exactly one producer (a background unit of work) and one consumer (the UI
  thread) per channel.
- `Sender.send` never blocks. Once the receiver is closed, sends are silently
  discarded; fire-and-forget operations rely on this.
- `Receiver.try_receive` never blocks and is called once per redraw tick.

A channel carries one logical result. Owners create a fresh channel per
operation and close the previous receiver, so a completion from a replaced
operation can never be absorbed.
"""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Callable, Generic, TypeVar, Union

from .app_logger import get_logger
from .errors import RegistryError

T = TypeVar("T")

_log = get_logger("channel")


@dataclass(frozen=True, slots=True)
class Success(Generic[T]):
    """Terminal outcome carrying the operation's payload."""

    value: T


@dataclass(frozen=True, slots=True)
class Failure:
    """Terminal outcome carrying a user-presentable error message."""

    message: str


Outcome = Union[Success[T], Failure]


class _ChannelState(Generic[T]):
    def __init__(self) -> None:
        self.items: queue.SimpleQueue[T] = queue.SimpleQueue()
        self.closed = threading.Event()


class Sender(Generic[T]):
    """Producer end of a channel."""

    __slots__ = ("_state",)

    def __init__(self, state: _ChannelState[T]) -> None:
        self._state = state

    def send(self, value: T) -> None:
        if self._state.closed.is_set():
            return
        self._state.items.put(value)


class Receiver(Generic[T]):
    """Consumer end of a channel."""

    __slots__ = ("_state",)

    def __init__(self, state: _ChannelState[T]) -> None:
        self._state = state

    def try_receive(self) -> T | None:
        """
        Return the next value, or None if nothing has been sent yet.

        Returns
        -------
        T | None
            Each sent value is returned exactly once. A closed receiver always
            returns None.
        """
        if self._state.closed.is_set():
            return None
        try:
            return self._state.items.get_nowait()
        except queue.Empty:
            return None

    def close(self) -> None:
        """Drop this receiver. Pending and future values are discarded."""
        self._state.closed.set()

    @property
    def closed(self) -> bool:
        return self._state.closed.is_set()


def create_channel() -> tuple[Sender[T], Receiver[T]]:
    """Create an unbounded single-producer/single-consumer channel."""
    state: _ChannelState[T] = _ChannelState()
    return Sender(state), Receiver(state)


def run_to_channel(
    sender: Sender[Outcome[T]],
    work: Callable[[], T],
    *,
    error_prefix: str,
) -> None:
    """
    Run `work` and send exactly one outcome.

    Parameters
    ----------
    sender:
        Channel to deliver the outcome to.
    work:
        The background unit of work. Its return value becomes the Success payload.
    error_prefix:
        Prepended to the error text of a Failure.

    Notes
    -----
    Any exception becomes a Failure so the owning controller never waits
    forever on an empty channel. Unexpected (non-domain) exceptions are logged
    with their traceback.
    """
    try:
        value = work()
    except RegistryError as exc:
        _log.warning("%s: %s", error_prefix, exc)
        sender.send(Failure(f"{error_prefix}: {exc}"))
        return
    except Exception as exc:
        _log.exception("%s: unexpected failure", error_prefix)
        sender.send(Failure(f"{error_prefix}: {exc}"))
        return
    sender.send(Success(value))
