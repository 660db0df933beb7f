"""Fake driver implementations.

Behaviour is injected through ``*_func`` attributes; calling an
operation whose function was not provided fails the test. Each fake
implements exactly the capabilities its class names, so capability
probing sees what a real backend of that shape would offer.

Usage:
    from fixtures.mocks.driver_mocks import MockCluster, MockFeed

    client = Client(MockCluster(cluster_status_func=lambda scope, opts: "cluster_finished"))
"""

from typing import Any, Callable, Iterable, List, Optional

from davenport import driver
from davenport.backends.memory import MemoryClient, MemoryServer
from davenport.errors import EndOfStream


def _call(func: Optional[Callable[..., Any]], name: str, *args: Any) -> Any:
    if func is None:
        raise AssertionError(f"unexpected call to {name}")
    return func(*args)


# =============================================================================
# CLIENTS
# =============================================================================

class MockClient:
    """Driver client with only the required operations."""

    def __init__(
        self,
        version_func=None,
        all_dbs_func=None,
        db_exists_func=None,
        create_db_func=None,
        destroy_db_func=None,
        db_func=None,
        **funcs: Any,
    ):
        self.version_func = version_func
        self.all_dbs_func = all_dbs_func
        self.db_exists_func = db_exists_func
        self.create_db_func = create_db_func
        self.destroy_db_func = destroy_db_func
        self.db_func = db_func
        for name, func in funcs.items():
            setattr(self, name, func)

    def version(self, scope):
        return _call(self.version_func, "version", scope)

    def all_dbs(self, scope, options=None):
        return _call(self.all_dbs_func, "all_dbs", scope, options)

    def db_exists(self, scope, name, options=None):
        return _call(self.db_exists_func, "db_exists", scope, name, options)

    def create_db(self, scope, name, options=None):
        return _call(self.create_db_func, "create_db", scope, name, options)

    def destroy_db(self, scope, name, options=None):
        return _call(self.destroy_db_func, "destroy_db", scope, name, options)

    def db(self, name, options=None):
        return _call(self.db_func, "db", name, options)


class MockCluster(MockClient):
    """Driver client with cluster setup support."""

    cluster_status_func = None
    cluster_setup_func = None

    def cluster_status(self, scope, options=None):
        return _call(self.cluster_status_func, "cluster_status", scope, options)

    def cluster_setup(self, scope, action):
        return _call(self.cluster_setup_func, "cluster_setup", scope, action)


class MockMembership(MockClient):
    """Driver client with /_membership support."""

    membership_func = None

    def membership(self, scope):
        return _call(self.membership_func, "membership", scope)


class MockDBUpdater(MockClient):
    """Driver client with a database updates feed."""

    db_updates_func = None

    def db_updates(self, scope):
        return _call(self.db_updates_func, "db_updates", scope)


class MockReplicator(MockClient):
    replicate_func = None

    def replicate(self, scope, target, source, options=None):
        return _call(self.replicate_func, "replicate", scope, target, source, options)


class MockCloser(MockClient):
    close_func = None

    def close(self):
        return _call(self.close_func, "close")


class MockDB:
    def __init__(
        self,
        put_func=None,
        get_func=None,
        delete_func=None,
        changes_func=None,
        all_docs_func=None,
    ):
        self.put_func = put_func
        self.get_func = get_func
        self.delete_func = delete_func
        self.changes_func = changes_func
        self.all_docs_func = all_docs_func

    def put(self, scope, doc_id, doc, options=None):
        return _call(self.put_func, "put", scope, doc_id, doc, options)

    def get(self, scope, doc_id, options=None):
        return _call(self.get_func, "get", scope, doc_id, options)

    def delete(self, scope, doc_id, rev, options=None):
        return _call(self.delete_func, "delete", scope, doc_id, rev, options)

    def changes(self, scope, options=None):
        return _call(self.changes_func, "changes", scope, options)

    def all_docs(self, scope, options=None):
        return _call(self.all_docs_func, "all_docs", scope, options)


# =============================================================================
# FEEDS
# =============================================================================

class MockDBUpdates:
    """Driver DBUpdates feed. Counts close() calls."""

    def __init__(self, next_func=None, close_func=None):
        self.next_func = next_func
        self.close_func = close_func
        self.close_calls = 0

    def next(self, update):
        return _call(self.next_func, "next", update)

    def close(self):
        self.close_calls += 1
        if self.close_func is not None:
            return self.close_func()
        return None


class MockChanges:
    def __init__(self, next_func=None, close_func=None, last_seq: str = ""):
        self.next_func = next_func
        self.close_func = close_func
        self.close_calls = 0
        self._last_seq = last_seq

    @property
    def last_seq(self) -> str:
        return self._last_seq

    def next(self, change):
        return _call(self.next_func, "next", change)

    def close(self):
        self.close_calls += 1
        if self.close_func is not None:
            return self.close_func()
        return None


class MockRows:
    def __init__(
        self,
        next_func=None,
        close_func=None,
        total_rows: int = 0,
        offset: int = 0,
        update_seq: str = "",
    ):
        self.next_func = next_func
        self.close_func = close_func
        self.close_calls = 0
        self.total_rows = total_rows
        self.offset = offset
        self.update_seq = update_seq

    def next(self, row):
        return _call(self.next_func, "next", row)

    def close(self):
        self.close_calls += 1
        if self.close_func is not None:
            return self.close_func()
        return None


class MockFeed:
    """Raw Feed for exercising the iterator core directly.

    Slots are single-element lists; ``advance`` stores the next value
    in ``slot[0]``.
    """

    def __init__(self, advance_func=None, close_func=None):
        self.advance_func = advance_func
        self.close_func = close_func
        self.advance_calls = 0
        self.close_calls = 0

    def zero_value(self) -> List[Any]:
        return [None]

    def advance(self, slot):
        self.advance_calls += 1
        return _call(self.advance_func, "advance", slot)

    def close(self):
        self.close_calls += 1
        if self.close_func is not None:
            return self.close_func()
        return None


# =============================================================================
# FACTORIES
# =============================================================================

def values_then(values: Iterable[Any], end: Optional[BaseException] = None) -> Callable[[Any], None]:
    """advance_func for MockFeed yielding ``values`` then raising ``end``.

    ``end`` defaults to EndOfStream.
    """
    pending = iter(list(values))

    def advance(slot):
        for value in pending:
            slot[0] = value
            return
        raise end if end is not None else EndOfStream()

    return advance


def updates_then(records: Iterable[dict], end: Optional[BaseException] = None) -> Callable[[Any], None]:
    """next_func for MockDBUpdates filling slots from dicts."""
    pending = iter(list(records))

    def next_update(update: driver.DBUpdate):
        for record in pending:
            update.db_name = record.get("db_name", "")
            update.type = record.get("type", "")
            update.seq = record.get("seq", "")
            return
        raise end if end is not None else EndOfStream()

    return next_update


def make_memory_client(logger=None, server: Optional[MemoryServer] = None) -> MemoryClient:
    return MemoryClient(server=server, logger=logger)
