"""Protocol definitions - library-level interfaces.

These are typing.Protocol classes used for dependency injection and
structural checks. Driver capability contracts live in davenport.driver.
"""

from typing import Any, Protocol, runtime_checkable


# =============================================================================
# LOGGING
# =============================================================================

@runtime_checkable
class LoggerProtocol(Protocol):
    """Structured logging interface."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def bind(self, **kwargs: Any) -> "LoggerProtocol": ...


# =============================================================================
# FEED
# =============================================================================

@runtime_checkable
class Feed(Protocol):
    """Lowest-level streaming contract wrapped by davenport.iterator.Iterator.

    Lifecycle:
        zero_value() is called once, at iterator construction, to
        allocate the slot the iterator fills repeatedly.
        advance(slot) fills ``slot`` in place. It raises EndOfStream
        when the stream is cleanly exhausted, or any other exception on
        transport/decoding failure. After raising, the feed is spent.
        close() releases transport resources. The iterator calls it at
        most once, possibly after advance() raised.

    Feeds need not be thread-safe and never deal with cancellation;
    the iterator owns both concerns.
    """

    def zero_value(self) -> Any: ...
    def advance(self, slot: Any) -> None: ...
    def close(self) -> None: ...


__all__ = [
    "LoggerProtocol",
    "Feed",
]
