"""In-process driver.

Keeps databases of JSON documents in memory and speaks the CouchDB
data model: revision ids ``<generation>-<md5>``, a per-database
sequence, a server-wide update log, single-node membership and the
/_cluster_setup state machine. Feeds are snapshots taken when they are
opened; continuous feeds are not supported.

Clients created with the same non-empty DSN share one server, so
``new_client("memory", "shared")`` twice sees the same databases. An
empty DSN gives each client a private server.
"""

import hashlib
import json
import re
import threading
import uuid
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple

from davenport import driver
from davenport.errors import DavenportError, EndOfStream
from davenport.logging import get_component_logger
from davenport.protocols import LoggerProtocol
from davenport.scope import Scope

MEMORY_VERSION = "3.3.3"
MEMORY_VENDOR = "Davenport In-Memory"
DEFAULT_NODE = "nonode@nohost"

_DB_NAME = re.compile(r"^[a-z][a-z0-9_$()+/-]*$")

# /_cluster_setup: action -> (states it is valid in, resulting state)
_CLUSTER_ACTIONS: Dict[str, Tuple[Tuple[str, ...], str]] = {
    "enable_single_node": (("cluster_disabled", "single_node_disabled"), "single_node_enabled"),
    "enable_cluster": (("cluster_disabled",), "cluster_enabled"),
    "add_node": (("cluster_enabled",), "cluster_enabled"),
    "finish_cluster": (("cluster_enabled",), "cluster_finished"),
}


def _not_found(reason: str) -> DavenportError:
    return DavenportError(reason, status=HTTPStatus.NOT_FOUND)


def _conflict() -> DavenportError:
    return DavenportError("Document update conflict.", status=HTTPStatus.CONFLICT)


def _bad_request(reason: str) -> DavenportError:
    return DavenportError(reason, status=HTTPStatus.BAD_REQUEST)


def _check_scope(scope: Scope) -> None:
    if scope.done():
        raise scope.cause


def _encode(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), sort_keys=True).encode("utf-8")


def _generation(rev: Optional[str]) -> int:
    if not rev:
        return 0
    head, _, _ = rev.partition("-")
    try:
        return int(head)
    except ValueError:
        raise _bad_request(f"Invalid rev format: {rev}")


def _new_rev(prev: Optional[str], body: Dict[str, Any], deleted: bool) -> str:
    digest = hashlib.md5(
        _encode([prev, deleted, body]),
        usedforsecurity=False,
    ).hexdigest()
    return f"{_generation(prev) + 1}-{digest}"


def _parse_seq(value: Any, current: int) -> int:
    if value in (None, "", 0):
        return 0
    if value == "now":
        return current
    head = str(value).partition("-")[0]
    try:
        return int(head)
    except ValueError:
        raise _bad_request(f"Invalid since value: {value}")


# =============================================================================
# STATE
# =============================================================================

@dataclass
class _Revision:
    rev: str
    body: Dict[str, Any]
    deleted: bool
    seq: int


@dataclass
class _Database:
    name: str
    docs: Dict[str, _Revision] = field(default_factory=dict)
    seq: int = 0

    def commit(self, doc_id: str, rev: str, body: Dict[str, Any], deleted: bool) -> None:
        self.seq += 1
        self.docs[doc_id] = _Revision(rev=rev, body=body, deleted=deleted, seq=self.seq)

    def live_ids(self) -> List[str]:
        return sorted(doc_id for doc_id, r in self.docs.items() if not r.deleted)


class MemoryServer:
    """Shared state of one in-memory server. Guarded by a single RLock."""

    def __init__(self, node: str = DEFAULT_NODE) -> None:
        self.node = node
        self.lock = threading.RLock()
        self.dbs: Dict[str, _Database] = {}
        self.updates: List[driver.DBUpdate] = []
        self.cluster_state = "cluster_disabled"

    def record_update(self, db_name: str, kind: str) -> None:
        """Append to the server-wide update log. Caller holds the lock."""
        seq = str(len(self.updates) + 1)
        self.updates.append(driver.DBUpdate(db_name=db_name, type=kind, seq=seq))

    def database(self, name: str) -> _Database:
        """Look up a database. Caller holds the lock."""
        db = self.dbs.get(name)
        if db is None:
            raise _not_found("Database does not exist.")
        return db


_SHARED_SERVERS: Dict[str, MemoryServer] = {}
_SHARED_LOCK = threading.Lock()


def _server_for(dsn: str) -> MemoryServer:
    if not dsn:
        return MemoryServer()
    with _SHARED_LOCK:
        server = _SHARED_SERVERS.get(dsn)
        if server is None:
            server = MemoryServer()
            _SHARED_SERVERS[dsn] = server
        return server


def reset_shared_servers() -> None:
    """Forget every DSN-shared server. Primarily for tests."""
    with _SHARED_LOCK:
        _SHARED_SERVERS.clear()


# =============================================================================
# FEEDS
# =============================================================================

class MemoryDBUpdates:
    """Snapshot of the server update log."""

    def __init__(self, updates: List[driver.DBUpdate]) -> None:
        self._pending = list(updates)
        self._pos = 0

    def next(self, update: driver.DBUpdate) -> None:
        if self._pos >= len(self._pending):
            raise EndOfStream()
        src = self._pending[self._pos]
        self._pos += 1
        update.db_name = src.db_name
        update.type = src.type
        update.seq = src.seq

    def close(self) -> None:
        self._pending = []


class MemoryChanges:
    def __init__(self, entries: List[driver.Change], last_seq: str) -> None:
        self._pending = entries
        self._pos = 0
        self._last_seq = last_seq

    @property
    def last_seq(self) -> str:
        return self._last_seq

    def next(self, change: driver.Change) -> None:
        if self._pos >= len(self._pending):
            raise EndOfStream()
        src = self._pending[self._pos]
        self._pos += 1
        change.id = src.id
        change.seq = src.seq
        change.deleted = src.deleted
        change.changes = list(src.changes)
        change.doc = src.doc

    def close(self) -> None:
        self._pending = []


class MemoryRows:
    def __init__(
        self,
        rows: List[driver.Row],
        total_rows: int,
        offset: int,
        update_seq: str = "",
    ) -> None:
        self._pending = rows
        self._pos = 0
        self._total_rows = total_rows
        self._offset = offset
        self._update_seq = update_seq

    @property
    def total_rows(self) -> int:
        return self._total_rows

    @property
    def offset(self) -> int:
        return self._offset

    @property
    def update_seq(self) -> str:
        return self._update_seq

    def next(self, row: driver.Row) -> None:
        if self._pos >= len(self._pending):
            raise EndOfStream()
        src = self._pending[self._pos]
        self._pos += 1
        row.id = src.id
        row.key = src.key
        row.value = src.value
        row.doc = src.doc
        row.error = src.error

    def close(self) -> None:
        self._pending = []


# =============================================================================
# DATABASE
# =============================================================================

class MemoryDB:
    """Database handle of the in-memory driver."""

    def __init__(self, server: MemoryServer, name: str, logger: LoggerProtocol) -> None:
        self._server = server
        self._name = name
        self._logger = logger.bind(db=name)

    def put(
        self,
        scope: Scope,
        doc_id: str,
        doc: Dict[str, Any],
        options: driver.Options = None,
    ) -> str:
        _check_scope(scope)
        if not doc_id:
            raise _bad_request("Document id must not be empty.")
        body = {k: v for k, v in doc.items() if k not in ("_id", "_rev")}
        given_rev = (options or {}).get("rev") or doc.get("_rev")

        with self._server.lock:
            db = self._server.database(self._name)
            current = db.docs.get(doc_id)
            if current is not None and not current.deleted:
                if given_rev != current.rev:
                    raise _conflict()
                prev = current.rev
            elif current is not None:
                # Recreating a deleted document continues its revision history.
                if given_rev and given_rev != current.rev:
                    raise _conflict()
                prev = current.rev
            else:
                if given_rev:
                    raise _conflict()
                prev = None

            rev = _new_rev(prev, body, False)
            db.commit(doc_id, rev, body, deleted=False)
            self._server.record_update(self._name, "updated")

        self._logger.debug("doc_saved", doc_id=doc_id, rev=rev)
        return rev

    def get(
        self,
        scope: Scope,
        doc_id: str,
        options: driver.Options = None,
    ) -> Dict[str, Any]:
        _check_scope(scope)
        with self._server.lock:
            db = self._server.database(self._name)
            current = db.docs.get(doc_id)
            if current is None:
                raise _not_found("missing")
            if current.deleted:
                raise _not_found("deleted")
            wanted = (options or {}).get("rev")
            if wanted and wanted != current.rev:
                raise _not_found("missing")
            return {"_id": doc_id, "_rev": current.rev, **json.loads(_encode(current.body))}

    def delete(
        self,
        scope: Scope,
        doc_id: str,
        rev: str,
        options: driver.Options = None,
    ) -> str:
        _check_scope(scope)
        with self._server.lock:
            db = self._server.database(self._name)
            current = db.docs.get(doc_id)
            if current is None or current.deleted:
                raise _not_found("missing" if current is None else "deleted")
            if rev != current.rev:
                raise _conflict()
            new_rev = _new_rev(current.rev, {}, True)
            db.commit(doc_id, new_rev, {}, deleted=True)
            self._server.record_update(self._name, "updated")

        self._logger.debug("doc_deleted", doc_id=doc_id, rev=new_rev)
        return new_rev

    def changes(self, scope: Scope, options: driver.Options = None) -> MemoryChanges:
        """Snapshot the change log.

        Options: since, include_docs, descending, limit. Only the most
        recent change of each document is reported, in sequence order.
        """
        _check_scope(scope)
        opts = options or {}
        feed = opts.get("feed", "normal")
        if feed not in ("normal", None):
            raise _bad_request(f"memory driver does not support feed={feed}")

        with self._server.lock:
            db = self._server.database(self._name)
            since = _parse_seq(opts.get("since"), db.seq)
            revisions = sorted(
                ((doc_id, r) for doc_id, r in db.docs.items() if r.seq > since),
                key=lambda item: item[1].seq,
                reverse=bool(opts.get("descending")),
            )
            limit = opts.get("limit")
            if limit is not None:
                revisions = revisions[: int(limit)]

            include_docs = bool(opts.get("include_docs"))
            entries = [
                driver.Change(
                    id=doc_id,
                    seq=str(r.seq),
                    deleted=r.deleted,
                    changes=[r.rev],
                    doc=_encode(self._document(doc_id, r)) if include_docs else b"",
                )
                for doc_id, r in revisions
            ]
            if revisions and not opts.get("descending"):
                last_seq = str(revisions[-1][1].seq)
            else:
                last_seq = str(db.seq)

        return MemoryChanges(entries, last_seq)

    def all_docs(self, scope: Scope, options: driver.Options = None) -> MemoryRows:
        """Snapshot live documents ordered by id.

        Options: include_docs, descending, skip, limit, startkey,
        endkey, update_seq.
        """
        _check_scope(scope)
        opts = options or {}
        descending = bool(opts.get("descending"))
        start = opts.get("startkey", opts.get("start_key"))
        end = opts.get("endkey", opts.get("end_key"))

        with self._server.lock:
            db = self._server.database(self._name)
            ids = db.live_ids()
            total = len(ids)
            if descending:
                ids.reverse()
            if start is not None:
                ids = [i for i in ids if (i <= start if descending else i >= start)]
            if end is not None:
                ids = [i for i in ids if (i >= end if descending else i <= end)]

            skip = int(opts.get("skip", 0))
            ids = ids[skip:]
            limit = opts.get("limit")
            if limit is not None:
                ids = ids[: int(limit)]

            include_docs = bool(opts.get("include_docs"))
            rows = []
            for doc_id in ids:
                r = db.docs[doc_id]
                rows.append(driver.Row(
                    id=doc_id,
                    key=_encode(doc_id),
                    value=_encode({"rev": r.rev}),
                    doc=_encode(self._document(doc_id, r)) if include_docs else b"",
                ))
            update_seq = str(db.seq) if opts.get("update_seq") else ""

        return MemoryRows(rows, total_rows=total, offset=skip, update_seq=update_seq)

    @staticmethod
    def _document(doc_id: str, r: _Revision) -> Dict[str, Any]:
        if r.deleted:
            return {"_id": doc_id, "_rev": r.rev, "_deleted": True}
        return {"_id": doc_id, "_rev": r.rev, **r.body}


# =============================================================================
# CLIENT
# =============================================================================

class MemoryClient:
    """Driver client of the in-memory backend.

    Implements every optional capability: cluster setup, membership,
    database updates and local replication.
    """

    def __init__(
        self,
        server: Optional[MemoryServer] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> None:
        self._server = server or MemoryServer()
        self._logger = get_component_logger("MemoryDriver", logger)

    @property
    def server(self) -> MemoryServer:
        return self._server

    def version(self, scope: Scope) -> driver.Version:
        _check_scope(scope)
        return driver.Version(version=MEMORY_VERSION, vendor=MEMORY_VENDOR, features=[])

    def all_dbs(self, scope: Scope, options: driver.Options = None) -> List[str]:
        _check_scope(scope)
        opts = options or {}
        with self._server.lock:
            names = sorted(self._server.dbs)
        if opts.get("descending"):
            names.reverse()
        names = names[int(opts.get("skip", 0)):]
        limit = opts.get("limit")
        if limit is not None:
            names = names[: int(limit)]
        return names

    def db_exists(self, scope: Scope, name: str, options: driver.Options = None) -> bool:
        _check_scope(scope)
        with self._server.lock:
            return name in self._server.dbs

    def create_db(self, scope: Scope, name: str, options: driver.Options = None) -> None:
        _check_scope(scope)
        if not _DB_NAME.match(name):
            raise _bad_request(
                f"Name: '{name}'. Only lowercase characters (a-z), digits (0-9), "
                "and any of the characters _, $, (, ), +, -, and / are allowed. "
                "Must begin with a letter."
            )
        with self._server.lock:
            if name in self._server.dbs:
                raise DavenportError(
                    "The database could not be created, the file already exists.",
                    status=HTTPStatus.PRECONDITION_FAILED,
                )
            self._server.dbs[name] = _Database(name=name)
            self._server.record_update(name, "created")

    def destroy_db(self, scope: Scope, name: str, options: driver.Options = None) -> None:
        _check_scope(scope)
        with self._server.lock:
            self._server.database(name)
            del self._server.dbs[name]
            self._server.record_update(name, "deleted")

    def db(self, name: str, options: driver.Options = None) -> MemoryDB:
        return MemoryDB(self._server, name, self._logger)

    # Cluster

    def cluster_status(self, scope: Scope, options: driver.Options = None) -> str:
        _check_scope(scope)
        with self._server.lock:
            return self._server.cluster_state

    def cluster_setup(self, scope: Scope, action: Any) -> None:
        """Apply a /_cluster_setup action, e.g. {"action": "enable_single_node"}."""
        _check_scope(scope)
        name = action.get("action") if isinstance(action, dict) else None
        if name not in _CLUSTER_ACTIONS:
            raise _bad_request(f"Invalid cluster setup action: {name!r}")
        allowed, result = _CLUSTER_ACTIONS[name]
        with self._server.lock:
            state = self._server.cluster_state
            if state not in allowed:
                raise _bad_request(f"Cluster setup action {name!r} not allowed in state {state!r}")
            self._server.cluster_state = result
        self._logger.info("cluster_setup_applied", action=name, state=result)

    def membership(self, scope: Scope) -> driver.ClusterMembership:
        _check_scope(scope)
        return driver.ClusterMembership(
            all_nodes=[self._server.node],
            cluster_nodes=[self._server.node],
        )

    # Updates and replication

    def db_updates(self, scope: Scope) -> MemoryDBUpdates:
        _check_scope(scope)
        with self._server.lock:
            return MemoryDBUpdates(self._server.updates)

    def replicate(
        self,
        scope: Scope,
        target: str,
        source: str,
        options: driver.Options = None,
    ) -> driver.Replication:
        """One-shot replication between two local databases.

        Revisions are carried over as-is; a target document is only
        replaced by a source revision of a higher generation. Pass
        {"create_target": True} to create a missing target.
        """
        _check_scope(scope)
        opts = options or {}
        written = 0
        with self._server.lock:
            src = self._server.database(source)
            if target not in self._server.dbs:
                if not opts.get("create_target"):
                    raise _not_found(f"Database does not exist: {target}")
                self._server.dbs[target] = _Database(name=target)
                self._server.record_update(target, "created")
            dst = self._server.dbs[target]

            for doc_id, r in sorted(src.docs.items(), key=lambda item: item[1].seq):
                existing = dst.docs.get(doc_id)
                if existing is not None and _generation(existing.rev) >= _generation(r.rev):
                    continue
                dst.commit(doc_id, r.rev, dict(r.body), deleted=r.deleted)
                written += 1
            if written:
                self._server.record_update(target, "updated")

        self._logger.info("replication_completed", source=source, target=target, docs_written=written)
        return driver.Replication(
            replication_id=uuid.uuid4().hex,
            source=source,
            target=target,
            state="completed",
            docs_written=written,
        )


def new_memory_client(dsn: str, settings: Any = None) -> MemoryClient:
    """Driver factory registered as "memory"."""
    return MemoryClient(server=_server_for(dsn))


__all__ = [
    "MemoryServer",
    "MemoryClient",
    "MemoryDB",
    "MemoryDBUpdates",
    "MemoryChanges",
    "MemoryRows",
    "new_memory_client",
    "reset_shared_servers",
]
