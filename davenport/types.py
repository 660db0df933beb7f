"""Library-level records returned to callers.

Immutable counterparts of the driver slots in davenport.driver.types.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from davenport import driver


@dataclass(frozen=True)
class DBUpdate:
    """A database-update record."""
    db_name: str = ""
    type: str = ""
    seq: str = ""

    @classmethod
    def from_driver(cls, update: driver.DBUpdate) -> "DBUpdate":
        return cls(db_name=update.db_name, type=update.type, seq=update.seq)


@dataclass(frozen=True)
class ClusterMembership:
    """Cluster membership as reported by /_membership."""
    all_nodes: List[str] = field(default_factory=list)
    cluster_nodes: List[str] = field(default_factory=list)

    @classmethod
    def from_driver(cls, membership: driver.ClusterMembership) -> "ClusterMembership":
        return cls(
            all_nodes=list(membership.all_nodes),
            cluster_nodes=list(membership.cluster_nodes),
        )


@dataclass(frozen=True)
class Change:
    id: str = ""
    seq: str = ""
    deleted: bool = False
    changes: Tuple[str, ...] = ()
    doc: bytes = b""

    @classmethod
    def from_driver(cls, change: driver.Change) -> "Change":
        return cls(
            id=change.id,
            seq=change.seq,
            deleted=change.deleted,
            changes=tuple(change.changes),
            doc=bytes(change.doc),
        )


@dataclass(frozen=True)
class Row:
    id: str = ""
    key: bytes = b""
    value: bytes = b""
    doc: bytes = b""
    error: Optional[str] = None

    @classmethod
    def from_driver(cls, row: driver.Row) -> "Row":
        return cls(
            id=row.id,
            key=bytes(row.key),
            value=bytes(row.value),
            doc=bytes(row.doc),
            error=row.error,
        )


@dataclass(frozen=True)
class Replication:
    replication_id: str = ""
    source: str = ""
    target: str = ""
    state: str = ""
    docs_written: int = 0

    @classmethod
    def from_driver(cls, replication: driver.Replication) -> "Replication":
        return cls(
            replication_id=replication.replication_id,
            source=replication.source,
            target=replication.target,
            state=replication.state,
            docs_written=replication.docs_written,
        )


@dataclass(frozen=True)
class Version:
    version: str = ""
    vendor: str = ""
    features: Tuple[str, ...] = ()

    @classmethod
    def from_driver(cls, version: driver.Version) -> "Version":
        return cls(
            version=version.version,
            vendor=version.vendor,
            features=tuple(version.features),
        )


__all__ = [
    "DBUpdate",
    "ClusterMembership",
    "Change",
    "Row",
    "Replication",
    "Version",
]
