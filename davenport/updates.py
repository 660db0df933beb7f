"""Server-wide database updates feed."""

from typing import Optional

from davenport import driver
from davenport.iterator import Iterator
from davenport.protocols import LoggerProtocol
from davenport.scope import Scope
from davenport.types import DBUpdate


class UpdatesFeed:
    """Adapts a driver DBUpdates stream to the Feed contract."""

    def __init__(self, updates: driver.DBUpdates) -> None:
        self.updates = updates

    def zero_value(self) -> driver.DBUpdate:
        return driver.DBUpdate()

    def advance(self, slot: driver.DBUpdate) -> None:
        self.updates.next(slot)

    def close(self) -> None:
        self.updates.close()


class DBUpdates(Iterator):
    """Iterator over database-update records.

    Accessors are total: before the first successful next() they return
    empty strings.

    Usage:
        with client.db_updates(scope) as updates:
            while updates.next():
                print(updates.db_name, updates.type, updates.seq)
        if updates.err() is not None:
            ...
    """

    def __init__(
        self,
        scope: Scope,
        updates: driver.DBUpdates,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._updates = updates
        super().__init__(scope, UpdatesFeed(updates), logger=logger)

    @property
    def db_name(self) -> str:
        """Name of the database that changed."""
        return self._current(lambda u: u.db_name, "")

    @property
    def type(self) -> str:
        """Kind of update: created, updated or deleted."""
        return self._current(lambda u: u.type, "")

    @property
    def seq(self) -> str:
        """Update sequence of the event."""
        return self._current(lambda u: u.seq, "")

    def _snapshot(self) -> Optional[DBUpdate]:
        return self._current(DBUpdate.from_driver, None)


__all__ = [
    "UpdatesFeed",
    "DBUpdates",
]
