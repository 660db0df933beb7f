"""Driver capability contracts.

A backend implements Client and DB, plus any subset of the optional
capabilities below. The client facade discovers capabilities with
isinstance() checks against these runtime-checkable protocols and
rejects calls to missing ones with UnsupportedCapabilityError.

Every method that may block receives the caller's Scope first.
Streaming methods return feeds (DBUpdates, Changes, Rows) whose next()
fills a caller-supplied slot and raises EndOfStream when exhausted.
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from davenport.driver.types import (
    Change,
    ClusterMembership,
    DBUpdate,
    Replication,
    Row,
    Version,
)
from davenport.scope import Scope

Options = Optional[Dict[str, Any]]


# =============================================================================
# REQUIRED
# =============================================================================

@runtime_checkable
class Changes(Protocol):
    """Changes feed of a single database."""

    def next(self, change: Change) -> None: ...
    def close(self) -> None: ...

    @property
    def last_seq(self) -> str: ...


@runtime_checkable
class Rows(Protocol):
    """Row feed of a view or _all_docs query."""

    def next(self, row: Row) -> None: ...
    def close(self) -> None: ...

    @property
    def total_rows(self) -> int: ...

    @property
    def offset(self) -> int: ...

    @property
    def update_seq(self) -> str: ...


@runtime_checkable
class DB(Protocol):
    """Database handle."""

    def put(self, scope: Scope, doc_id: str, doc: Dict[str, Any], options: Options = None) -> str: ...
    def get(self, scope: Scope, doc_id: str, options: Options = None) -> Dict[str, Any]: ...
    def delete(self, scope: Scope, doc_id: str, rev: str, options: Options = None) -> str: ...
    def changes(self, scope: Scope, options: Options = None) -> Changes: ...
    def all_docs(self, scope: Scope, options: Options = None) -> Rows: ...


@runtime_checkable
class Client(Protocol):
    """Operations every backend provides."""

    def version(self, scope: Scope) -> Version: ...
    def all_dbs(self, scope: Scope, options: Options = None) -> List[str]: ...
    def db_exists(self, scope: Scope, name: str, options: Options = None) -> bool: ...
    def create_db(self, scope: Scope, name: str, options: Options = None) -> None: ...
    def destroy_db(self, scope: Scope, name: str, options: Options = None) -> None: ...
    def db(self, name: str, options: Options = None) -> DB: ...


# =============================================================================
# OPTIONAL CAPABILITIES
# =============================================================================

@runtime_checkable
class Cluster(Protocol):
    """Cluster setup operations (/_cluster_setup)."""

    def cluster_status(self, scope: Scope, options: Options = None) -> str: ...
    def cluster_setup(self, scope: Scope, action: Any) -> None: ...


@runtime_checkable
class Membership(Protocol):
    """Cluster membership (/_membership)."""

    def membership(self, scope: Scope) -> ClusterMembership: ...


@runtime_checkable
class DBUpdates(Protocol):
    """Server-wide database updates feed."""

    def next(self, update: DBUpdate) -> None: ...
    def close(self) -> None: ...


@runtime_checkable
class DBUpdater(Protocol):
    """Backend able to stream database updates (/_db_updates)."""

    def db_updates(self, scope: Scope) -> DBUpdates: ...


@runtime_checkable
class Replicator(Protocol):
    """Backend able to run replications."""

    def replicate(self, scope: Scope, target: str, source: str, options: Options = None) -> Replication: ...


@runtime_checkable
class Closer(Protocol):
    """Backend client holding resources that must be released."""

    def close(self) -> None: ...


__all__ = [
    "Options",
    "Client",
    "DB",
    "Changes",
    "Rows",
    "Cluster",
    "Membership",
    "DBUpdates",
    "DBUpdater",
    "Replicator",
    "Closer",
]
