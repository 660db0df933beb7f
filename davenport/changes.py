"""Database changes feed."""

from typing import Any, List, Optional

from davenport import driver
from davenport.iterator import Iterator
from davenport.protocols import LoggerProtocol
from davenport.scan import scan
from davenport.scope import Scope
from davenport.types import Change


class ChangesFeed:
    def __init__(self, changes: driver.Changes) -> None:
        self.changes = changes

    def zero_value(self) -> driver.Change:
        return driver.Change()

    def advance(self, slot: driver.Change) -> None:
        self.changes.next(slot)

    def close(self) -> None:
        self.changes.close()


class Changes(Iterator):
    """Iterator over a database changes feed.

    Usage:
        changes = db.changes(scope, {"include_docs": True})
        for change in changes:
            doc = changes.scan_doc(dict)
    """

    def __init__(
        self,
        scope: Scope,
        changes: driver.Changes,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._changes = changes
        super().__init__(scope, ChangesFeed(changes), logger=logger)

    @property
    def id(self) -> str:
        return self._current(lambda c: c.id, "")

    @property
    def seq(self) -> str:
        return self._current(lambda c: c.seq, "")

    @property
    def deleted(self) -> bool:
        return self._current(lambda c: c.deleted, False)

    @property
    def changes(self) -> List[str]:
        """Leaf revisions of the changed document."""
        return self._current(lambda c: list(c.changes), [])

    @property
    def last_seq(self) -> str:
        """Sequence the feed ended at. Only meaningful once iteration is done."""
        return self._changes.last_seq

    def scan_doc(self, dest: Any) -> Any:
        """Decode the current change's document (requires include_docs)."""
        return self.read(lambda c: scan(dest, c.doc))

    def _snapshot(self) -> Optional[Change]:
        return self._current(Change.from_driver, None)


__all__ = [
    "ChangesFeed",
    "Changes",
]
