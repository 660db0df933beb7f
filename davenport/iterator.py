"""Iterator core shared by every streaming result.

An Iterator wraps a Feed, binds it to a caller-supplied Scope and runs
the lifecycle state machine:

    FRESH  --advance ok-->                READY
    FRESH  --end/error/close/cancel-->    CLOSED
    READY  --advance ok-->                READY
    READY  --end/error/close/cancel-->    CLOSED
    CLOSED --anything-->                  CLOSED

Locking: one reader-writer lock per iterator. Advance and accessors
take it shared; close takes it exclusive, and is the only place the
terminal error and the closed flag are written. The feed is released
exactly once, by whichever close gets the exclusive lock first. A
close that is already waiting for the lock when an advance fails
decides the terminal error; the advance error is dropped.

Cancellation: the iterator derives a child of the caller's scope and
registers a single close-on-cancel callback on it (the watcher).
Cancelling the caller's scope closes the iterator with the scope's
cause; closing the iterator retires the watcher and cancels the child.

Usage:
    it = Iterator(scope, feed)
    while it.next():
        it.read(lambda value: print(value))
    if it.err() is not None:
        raise it.err()

    # or, equivalently
    with Iterator(scope, feed) as it:
        for value in it:
            print(value)
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Optional, TypeVar

from davenport.errors import EndOfStream, IteratorClosedError, IteratorNotReadyError
from davenport.logging import get_component_logger
from davenport.protocols import Feed, LoggerProtocol
from davenport.scope import Scope, with_cancel
from davenport.utils.rwlock import RWLock

T = TypeVar("T")


class Iterator:
    """Concurrency-safe, scope-bound cursor over a Feed.

    Calls to next() must not race each other; close() and err() may be
    called from any thread at any time.
    """

    def __init__(
        self,
        scope: Scope,
        feed: Feed,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._logger = get_component_logger(type(self).__name__, logger)
        self._feed = feed
        self._lock = RWLock()
        self._ready = False
        self._closed = False
        self._last_err: Optional[BaseException] = None
        # Set by the first close to request the exclusive lock; holds its error.
        self._close_pending: Optional[tuple] = None
        self._cur_val: Any = feed.zero_value()

        self._scope = with_cancel(scope)
        self._watch = 0
        # Registered last: runs immediately if the scope is already cancelled.
        self._watch = self._scope.add_done_callback(self._await_done)

    def __repr__(self) -> str:
        if self._closed:
            state = "closed"
        elif self._ready:
            state = "ready"
        else:
            state = "fresh"
        return f"{type(self).__name__}(state={state})"

    # =========================================================================
    # PUBLIC CONTRACT
    # =========================================================================

    @property
    def closed(self) -> bool:
        with self._lock.read_locked():
            return self._closed

    def next(self) -> bool:
        """Prepare the next value for reading.

        Returns True on success. Returns False when the feed is exhausted
        or fails, in which case the iterator has closed itself and err()
        tells the two apart.
        """
        with self._lock.read_locked():
            if self._closed:
                return False
            try:
                self._feed.advance(self._cur_val)
            except Exception as e:
                failure = e
            else:
                self._ready = True
                return True

        pending = self._close_pending
        if pending is not None:
            # A close already under way decides the terminal error.
            self._logger.debug(
                "iterator_feed_error_dropped",
                error=str(failure),
                error_type=type(failure).__name__,
            )
            failure = pending[0]
        self._auto_close(failure)
        return False

    def close(self) -> None:
        """Close the iterator and release the feed.

        Idempotent. Does not affect err(). Raises whatever the feed's own
        close raised, on the call that actually released it.
        """
        self._close(None)

    def err(self) -> Optional[BaseException]:
        """Return the error that ended iteration, if any.

        End-of-stream is not an error. May be called before or after close.
        """
        with self._lock.read_locked():
            if isinstance(self._last_err, EndOfStream):
                return None
            return self._last_err

    def read(self, fn: Callable[[Any], T]) -> T:
        """Call ``fn`` with the current value under the shared lock.

        ``fn`` must treat the value as read-only and must not call back
        into this iterator.

        Raises:
            IteratorClosedError: the iterator is closed
            IteratorNotReadyError: next() has not succeeded yet
        """
        with self._lock.read_locked():
            if self._closed:
                raise IteratorClosedError()
            if not self._ready:
                raise IteratorNotReadyError()
            return fn(self._cur_val)

    # =========================================================================
    # PYTHON PROTOCOLS
    # =========================================================================

    def __iter__(self) -> "Iterator":
        return self

    def __next__(self) -> Any:
        if self.next():
            return self._snapshot()
        err = self.err()
        if err is not None:
            raise err
        raise StopIteration

    def __enter__(self) -> "Iterator":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.close()
            return False
        try:
            self.close()
        except Exception as close_err:
            self._logger.warning(
                "iterator_close_failed",
                trigger="context_exit",
                error=str(close_err),
                error_type=type(close_err).__name__,
            )
        return False

    # =========================================================================
    # FACADE HELPERS
    # =========================================================================

    def _current(self, getter: Callable[[Any], T], zero: T) -> T:
        """Total accessor: ``zero`` until the first successful advance."""
        with self._lock.read_locked():
            if not self._ready:
                return zero
            return getter(self._cur_val)

    def _snapshot(self) -> Any:
        """Value yielded by Python iteration. Facades return immutable records."""
        return self._current(copy.deepcopy, None)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _close(self, err: Optional[BaseException]) -> None:
        if self._close_pending is None:
            self._close_pending = (err,)
        with self._lock.write_locked():
            if self._closed:
                return
            self._closed = True
            if self._last_err is None:
                self._last_err = err

            self._scope.remove_done_callback(self._watch)
            try:
                self._feed.close()
            finally:
                self._scope.cancel()

        self._logger.debug(
            "iterator_closed",
            cause=type(err).__name__ if err is not None else "close",
        )

    def _auto_close(self, failure: Optional[BaseException]) -> None:
        if failure is not None and not isinstance(failure, EndOfStream):
            self._logger.debug(
                "iterator_feed_failed",
                error=str(failure),
                error_type=type(failure).__name__,
            )
        try:
            self._close(failure)
        except Exception as e:
            self._logger.warning(
                "iterator_close_failed",
                trigger="auto_close",
                error=str(e),
                error_type=type(e).__name__,
            )

    def _await_done(self, scope: Scope) -> None:
        try:
            self._close(scope.cause)
        except Exception as e:
            self._logger.warning(
                "iterator_close_failed",
                trigger="scope_cancelled",
                error=str(e),
                error_type=type(e).__name__,
            )


__all__ = [
    "Iterator",
]
