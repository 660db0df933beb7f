"""Database handle facade."""

from typing import Any, Dict, Optional

from davenport import driver
from davenport.changes import Changes
from davenport.errors import driver_errors
from davenport.logging import get_component_logger
from davenport.protocols import LoggerProtocol
from davenport.rows import Rows
from davenport.scope import Scope


class DB:
    """Handle to a single database.

    Obtained from Client.db(); holds no scope of its own. Streaming
    operations return iterators bound to the scope passed to them.
    """

    def __init__(
        self,
        name: str,
        driver_db: driver.DB,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._name = name
        self._driver_db = driver_db
        self._logger = get_component_logger("DB", logger).bind(db=name)

    @property
    def name(self) -> str:
        return self._name

    def __repr__(self) -> str:
        return f"DB(name={self._name!r})"

    def put(
        self,
        scope: Scope,
        doc_id: str,
        doc: Dict[str, Any],
        options: driver.Options = None,
    ) -> str:
        """Create or update a document. Returns the new revision."""
        with driver_errors(self._logger, "put"):
            return self._driver_db.put(scope, doc_id, doc, options)

    def get(
        self,
        scope: Scope,
        doc_id: str,
        options: driver.Options = None,
    ) -> Dict[str, Any]:
        with driver_errors(self._logger, "get"):
            return self._driver_db.get(scope, doc_id, options)

    def delete(
        self,
        scope: Scope,
        doc_id: str,
        rev: str,
        options: driver.Options = None,
    ) -> str:
        """Delete a document at ``rev``. Returns the tombstone revision."""
        with driver_errors(self._logger, "delete"):
            return self._driver_db.delete(scope, doc_id, rev, options)

    def changes(self, scope: Scope, options: driver.Options = None) -> Changes:
        """Open the changes feed of this database."""
        with driver_errors(self._logger, "changes"):
            feed = self._driver_db.changes(scope, options)
        return Changes(scope, feed, logger=self._logger)

    def all_docs(self, scope: Scope, options: driver.Options = None) -> Rows:
        with driver_errors(self._logger, "all_docs"):
            feed = self._driver_db.all_docs(scope, options)
        return Rows(scope, feed, logger=self._logger)


__all__ = [
    "DB",
]
