"""Error taxonomy for the davenport client.

Every error the library raises on its own behalf derives from
DavenportError and carries an HTTP status, so callers can treat a
backend failure and a library misuse the same way:

    try:
        status = client.cluster_status(scope)
    except DavenportError as e:
        if e.status == HTTPStatus.NOT_IMPLEMENTED:
            ...

End-of-stream and scope causes are signals rather than failures and
derive from plain Exception.
"""

from contextlib import contextmanager
from http import HTTPStatus
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from davenport.protocols import LoggerProtocol


def _as_status(status: int) -> int:
    # Servers and proxies may answer with codes HTTPStatus does not define.
    try:
        return HTTPStatus(int(status))
    except ValueError:
        return int(status)


class DavenportError(Exception):
    """Base class for library errors carrying an HTTP status."""

    default_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status: Optional[int] = None):
        self.message = message
        self.status = _as_status(status if status is not None else self.default_status)
        super().__init__(message)


class UnsupportedCapabilityError(DavenportError):
    """The active driver does not implement the requested capability."""

    default_status = HTTPStatus.NOT_IMPLEMENTED


class DriverError(DavenportError):
    """A driver failure that did not carry its own status."""


class NoSuchDriverError(DavenportError):
    """No driver is registered under the requested name."""

    default_status = HTTPStatus.BAD_REQUEST


class IteratorStateError(DavenportError):
    """Iterator accessed in a state that does not allow it."""

    default_status = HTTPStatus.BAD_REQUEST


class IteratorClosedError(IteratorStateError):
    def __init__(self) -> None:
        super().__init__("Iterator is closed")


class IteratorNotReadyError(IteratorStateError):
    def __init__(self) -> None:
        super().__init__("Iterator access before calling Next")


class NilPointerError(DavenportError):
    """scan() was handed no destination."""

    default_status = HTTPStatus.BAD_REQUEST

    def __init__(self) -> None:
        super().__init__("nil pointer")


class EndOfStream(Exception):
    """Raised by a feed when it is cleanly exhausted."""


class ScopeCancelled(Exception):
    """Default cause of an explicitly cancelled scope."""

    def __init__(self, message: str = "scope canceled"):
        super().__init__(message)


class DeadlineExceeded(ScopeCancelled):
    """Cause of a scope whose timeout elapsed."""

    def __init__(self, message: str = "scope deadline exceeded"):
        super().__init__(message)


# Stable capability messages, relied on by existing callers.
ERR_CLUSTER_UNSUPPORTED = "driver does not support cluster operations"
ERR_MEMBERSHIP_UNSUPPORTED = "driver does not support the /_membership endpoint"
ERR_DB_UPDATER_UNSUPPORTED = "driver does not implement DBUpdater"
ERR_REPLICATOR_UNSUPPORTED = "driver does not support replication"


def status_code(err: Optional[BaseException]) -> int:
    """Return the HTTP status associated with ``err``.

    Errors without a status report 500. ``None`` reports 0.
    """
    if err is None:
        return 0
    status = getattr(err, "status", None)
    if isinstance(status, int):
        return int(status)
    return int(HTTPStatus.INTERNAL_SERVER_ERROR)


def wrap_driver_error(err: Exception) -> Exception:
    """Translate a driver exception into a library-level error.

    Exceptions already carrying an integer status pass through as-is.
    """
    if isinstance(getattr(err, "status", None), int):
        return err
    return DriverError(str(err))


@contextmanager
def driver_errors(logger: "LoggerProtocol", operation: str) -> Iterator[None]:
    """Translate exceptions escaping a driver call.

    Scope causes propagate untouched; exceptions with a status are
    re-raised as-is; anything else becomes a DriverError (500) chained
    to the original.
    """
    try:
        yield
    except ScopeCancelled:
        raise
    except Exception as e:
        wrapped = wrap_driver_error(e)
        if wrapped is e:
            raise
        logger.error(
            "driver_call_failed",
            operation=operation,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise wrapped from e


__all__ = [
    "DavenportError",
    "UnsupportedCapabilityError",
    "DriverError",
    "NoSuchDriverError",
    "IteratorStateError",
    "IteratorClosedError",
    "IteratorNotReadyError",
    "NilPointerError",
    "EndOfStream",
    "ScopeCancelled",
    "DeadlineExceeded",
    "ERR_CLUSTER_UNSUPPORTED",
    "ERR_MEMBERSHIP_UNSUPPORTED",
    "ERR_DB_UPDATER_UNSUPPORTED",
    "ERR_REPLICATOR_UNSUPPORTED",
    "status_code",
    "wrap_driver_error",
    "driver_errors",
]
