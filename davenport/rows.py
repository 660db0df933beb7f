"""Row results of views and _all_docs."""

from typing import Any, Optional

from davenport import driver
from davenport.iterator import Iterator
from davenport.protocols import LoggerProtocol
from davenport.scan import scan
from davenport.scope import Scope
from davenport.types import Row


class RowsFeed:
    def __init__(self, rows: driver.Rows) -> None:
        self.rows = rows

    def zero_value(self) -> driver.Row:
        return driver.Row()

    def advance(self, slot: driver.Row) -> None:
        self.rows.next(slot)

    def close(self) -> None:
        self.rows.close()


class Rows(Iterator):
    """Iterator over query rows.

    Keys, values and documents are kept undecoded; use the scan_*
    methods to decode them into the desired shape.
    """

    def __init__(
        self,
        scope: Scope,
        rows: driver.Rows,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._rows = rows
        super().__init__(scope, RowsFeed(rows), logger=logger)

    @property
    def id(self) -> str:
        return self._current(lambda r: r.id, "")

    @property
    def key(self) -> bytes:
        """Raw JSON key of the current row."""
        return self._current(lambda r: bytes(r.key), b"")

    @property
    def total_rows(self) -> int:
        return self._rows.total_rows

    @property
    def offset(self) -> int:
        return self._rows.offset

    @property
    def update_seq(self) -> str:
        return self._rows.update_seq

    def scan_key(self, dest: Any) -> Any:
        return self.read(lambda r: scan(dest, r.key))

    def scan_value(self, dest: Any) -> Any:
        return self.read(lambda r: scan(dest, r.value))

    def scan_doc(self, dest: Any) -> Any:
        """Decode the current row's document (requires include_docs)."""
        return self.read(lambda r: scan(dest, r.doc))

    def _snapshot(self) -> Optional[Row]:
        return self._current(Row.from_driver, None)


__all__ = [
    "RowsFeed",
    "Rows",
]
