"""
Guard - exactly-once error funnelling for handlers that may suspend.

A handler can fail in two ways:

- SynchronousFault: it raises before returning. Caught at the call site and
  forwarded immediately.
- AsynchronousFault: it returns an awaitable that later fails. The awaitable
  is scheduled on the running loop and a done-callback forwards the failure
  when it settles, long after the call itself returned.

Both paths go through one ``Continuation`` per invocation, which lets the
host's ``next`` fire at most once. A fault that arrives after the
continuation already fired cannot be forwarded again, so it is logged with
its traceback.
"""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, Optional
import asyncio
import inspect
import logging

from ..faults import HandlerCancelledFault
from ..http import Request


logger = logging.getLogger("switchyard.guard")


def _exc_info(err: Any):
    if isinstance(err, BaseException):
        return (type(err), err, err.__traceback__)
    return None


class Continuation:
    """
    Once-only wrapper around the host's ``next``.

    Handed to the wrapped handler in place of the raw continuation.
    """

    __slots__ = ("_next", "label", "_fired", "_error")

    def __init__(self, next_fn: Callable[..., None], label: str):
        self._next = next_fn
        self.label = label
        self._fired = False
        self._error: Optional[Any] = None

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def error(self) -> Optional[Any]:
        """The error this continuation forwarded, if any."""
        return self._error

    def __call__(self, err: Optional[Any] = None) -> None:
        if self._fired:
            if err is not None:
                logger.error(
                    "%s failed after it already passed control on; not forwarded again: %r",
                    self.label, err, exc_info=_exc_info(err),
                )
            else:
                logger.debug("%s called next() more than once; ignored", self.label)
            return

        self._fired = True
        if err is None:
            self._next()
        else:
            self._error = err
            self._next(err)

    def __repr__(self) -> str:
        return f"<Continuation {self.label} fired={self._fired}>"


def run_guarded(
    call: Callable[[], Any],
    request: Request,
    cont: Continuation,
    *,
    on_result: Optional[Callable[[Any], None]] = None,
) -> None:
    """
    Invoke *call* so that every failure reaches *cont* exactly once.

    Args:
        call: Zero-argument thunk that performs the handler call
        request: Holds scheduled awaitables until they settle
        cont: The invocation's continuation
        on_result: Called with the handler's (awaited) value on success
    """
    try:
        result = call()
    except Exception as exc:
        cont(exc)
        return

    if inspect.isawaitable(result):
        future = asyncio.ensure_future(result)
        request.track(future)
        future.add_done_callback(partial(_settled, cont, on_result))
    elif on_result is not None:
        _deliver(cont, on_result, result)


def _settled(
    cont: Continuation,
    on_result: Optional[Callable[[Any], None]],
    future: asyncio.Future,
) -> None:
    """Completion observer attached to a handler's pending result."""
    if future.cancelled():
        cont(HandlerCancelledFault(cont.label))
        return

    exc = future.exception()
    if exc is not None:
        cont(exc)
        return

    if on_result is not None:
        _deliver(cont, on_result, future.result())


def _deliver(cont: Continuation, on_result: Callable[[Any], None], value: Any) -> None:
    try:
        on_result(value)
    except Exception as exc:
        cont(exc)
