"""Driver-level record types.

These are the mutable slots drivers fill in place. Library callers see
them only through iterator facades and the immutable records in
davenport.types.

Raw JSON fields (keys, values, documents) are kept as the undecoded
bytes the backend produced; decoding happens through davenport.scan.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class DBUpdate:
    """One entry of the server-wide database updates feed."""
    db_name: str = ""
    type: str = ""  # created, updated, deleted
    seq: str = ""


@dataclass
class ClusterMembership:
    """Nodes known to the cluster and nodes that are part of it."""
    all_nodes: List[str] = field(default_factory=list)
    cluster_nodes: List[str] = field(default_factory=list)


@dataclass
class Change:
    """One entry of a database changes feed."""
    id: str = ""
    seq: str = ""
    deleted: bool = False
    changes: List[str] = field(default_factory=list)  # leaf revisions
    doc: bytes = b""


@dataclass
class Row:
    """One row of a view or _all_docs result."""
    id: str = ""
    key: bytes = b""
    value: bytes = b""
    doc: bytes = b""
    error: Optional[str] = None


@dataclass
class Replication:
    """Outcome of a replication request."""
    replication_id: str = ""
    source: str = ""
    target: str = ""
    state: str = ""  # triggered, running, completed, failed
    docs_written: int = 0


@dataclass
class Version:
    """Server identity as reported by the backend."""
    version: str = ""
    vendor: str = ""
    features: List[str] = field(default_factory=list)


__all__ = [
    "DBUpdate",
    "ClusterMembership",
    "Change",
    "Row",
    "Replication",
    "Version",
]
