"""Cancellation scopes.

A Scope is a hierarchical, thread-safe cancellation signal with a cause.
Every operation that can block or spawn takes a scope as its first
argument; cancelling a scope cancels all of its descendants with the
same cause.

Usage:
    from davenport.scope import background, with_cancel, with_timeout

    root = background()
    scope = with_timeout(root, 5.0)
    updates = client.db_updates(scope)
    ...
    scope.cancel()  # or let the deadline fire
"""

from __future__ import annotations

import itertools
import threading
from typing import Callable, Dict, Optional, Set

from davenport.errors import DeadlineExceeded, ScopeCancelled

DoneCallback = Callable[["Scope"], None]


class Scope:
    """Cancellation scope.

    Scopes are created with background(), with_cancel() or
    with_timeout(); constructing one directly yields a root scope.
    Done callbacks run synchronously in the thread that cancels the
    scope, outside the scope's internal lock.
    """

    def __init__(self, parent: Optional[Scope] = None) -> None:
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._cause: Optional[BaseException] = None
        self._parent = parent
        self._children: Set[Scope] = set()
        self._callbacks: Dict[int, DoneCallback] = {}
        self._handles = itertools.count(1)
        self._timer: Optional[threading.Timer] = None

        if parent is not None:
            parent._adopt(self)

    def __repr__(self) -> str:
        state = f"cancelled cause={self._cause!r}" if self.done() else "active"
        return f"Scope({state})"

    @property
    def cause(self) -> Optional[BaseException]:
        """The cancellation cause, or None while the scope is active."""
        with self._lock:
            return self._cause

    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the scope is cancelled or ``timeout`` elapses."""
        return self._done.wait(timeout)

    def cancel(self, cause: Optional[BaseException] = None) -> None:
        """Cancel this scope and its descendants.

        Only the first cancellation records a cause; later calls are no-ops.
        """
        with self._lock:
            if self._cause is not None:
                return
            self._cause = cause if cause is not None else ScopeCancelled()
            self._done.set()
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
            children = list(self._children)
            self._children.clear()
            timer, self._timer = self._timer, None
            cause = self._cause

        if timer is not None:
            timer.cancel()
        if self._parent is not None:
            self._parent._orphan(self)
        # Own callbacks run before descendants are cancelled.
        for callback in callbacks:
            callback(self)
        for child in children:
            child.cancel(cause)

    def add_done_callback(self, callback: DoneCallback) -> int:
        """Register ``callback`` to run once when the scope is cancelled.

        Runs the callback immediately if the scope is already done.

        Returns:
            Handle for remove_done_callback()
        """
        with self._lock:
            handle = next(self._handles)
            if self._cause is None:
                self._callbacks[handle] = callback
                return handle
        callback(self)
        return handle

    def remove_done_callback(self, handle: int) -> bool:
        """Unregister a callback. Returns True if it was still pending."""
        with self._lock:
            return self._callbacks.pop(handle, None) is not None

    # INTERNALS

    def _adopt(self, child: Scope) -> None:
        with self._lock:
            cause = self._cause
            if cause is None:
                self._children.add(child)
                return
        child.cancel(cause)

    def _orphan(self, child: Scope) -> None:
        with self._lock:
            self._children.discard(child)

    def _start_timer(self, seconds: float) -> None:
        timer = threading.Timer(seconds, self.cancel, args=(DeadlineExceeded(),))
        timer.daemon = True
        with self._lock:
            if self._cause is not None:
                return
            self._timer = timer
        timer.start()


def background() -> Scope:
    """Return a new root scope that is only cancelled explicitly."""
    return Scope()


def with_cancel(parent: Scope) -> Scope:
    """Derive a child scope of ``parent``. Cancel it with ``scope.cancel()``."""
    return Scope(parent)


def with_timeout(parent: Scope, seconds: float) -> Scope:
    """Derive a child scope that cancels itself after ``seconds``.

    The cause of a timed-out scope is DeadlineExceeded.
    """
    scope = Scope(parent)
    if seconds <= 0:
        scope.cancel(DeadlineExceeded())
    else:
        scope._start_timer(seconds)
    return scope


__all__ = [
    "Scope",
    "DoneCallback",
    "background",
    "with_cancel",
    "with_timeout",
]
