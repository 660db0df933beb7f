"""Driver contracts and capability discovery.

Backends implement the protocols in davenport.driver.interfaces. The
capability set of a driver client is discovered once, when it is
wrapped by davenport.Client, and stored alongside the handle.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Type

from davenport.driver.interfaces import (
    Changes,
    Client,
    Closer,
    Cluster,
    DB,
    DBUpdater,
    DBUpdates,
    Membership,
    Options,
    Replicator,
    Rows,
)
from davenport.driver.types import (
    Change,
    ClusterMembership,
    DBUpdate,
    Replication,
    Row,
    Version,
)


class Capability(str, Enum):
    """Optional backend features."""
    CLUSTER = "cluster"
    MEMBERSHIP = "membership"
    DB_UPDATER = "db_updater"
    REPLICATOR = "replicator"


CAPABILITY_PROTOCOLS: Dict[Capability, Type[Any]] = {
    Capability.CLUSTER: Cluster,
    Capability.MEMBERSHIP: Membership,
    Capability.DB_UPDATER: DBUpdater,
    Capability.REPLICATOR: Replicator,
}


def detect_capabilities(driver_client: Any) -> FrozenSet[Capability]:
    """Probe ``driver_client`` for every optional capability."""
    return frozenset(
        capability
        for capability, protocol in CAPABILITY_PROTOCOLS.items()
        if isinstance(driver_client, protocol)
    )


__all__ = [
    # Capabilities
    "Capability",
    "CAPABILITY_PROTOCOLS",
    "detect_capabilities",
    # Protocols
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
    # Types
    "DBUpdate",
    "ClusterMembership",
    "Change",
    "Row",
    "Replication",
    "Version",
]
