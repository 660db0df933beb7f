"""Client facade over a driver client.

The facade owns capability dispatch. Optional driver features are
probed once, when the driver client is wrapped, and calls to a missing
capability fail with UnsupportedCapabilityError (status 501) carrying a
stable message. Driver failures surface with their own status when they
carry one and as DriverError (status 500) otherwise.

Usage:
    from davenport import new_client
    from davenport.scope import background

    client = new_client("memory")
    scope = background()
    client.create_db(scope, "orders")
    with client.db_updates(scope) as updates:
        for update in updates:
            print(update.db_name, update.type)
"""

from typing import Any, FrozenSet, List, Optional

from davenport import driver
from davenport.db import DB
from davenport.driver import Capability, detect_capabilities
from davenport.errors import (
    ERR_CLUSTER_UNSUPPORTED,
    ERR_DB_UPDATER_UNSUPPORTED,
    ERR_MEMBERSHIP_UNSUPPORTED,
    ERR_REPLICATOR_UNSUPPORTED,
    UnsupportedCapabilityError,
    driver_errors,
)
from davenport.logging import get_component_logger
from davenport.protocols import LoggerProtocol
from davenport.scope import Scope
from davenport.types import ClusterMembership, Replication, Version
from davenport.updates import DBUpdates


class Client:
    """Database server client.

    Wraps a driver client together with the capability set discovered
    for it. Every operation that may block takes a Scope first.
    """

    def __init__(
        self,
        driver_client: driver.Client,
        logger: Optional[LoggerProtocol] = None,
        driver_name: str = "",
        dsn: str = "",
    ) -> None:
        self._driver_client = driver_client
        self._driver_name = driver_name
        self._dsn = dsn
        self._capabilities = detect_capabilities(driver_client)
        self._logger = get_component_logger("Client", logger)

        self._logger.debug(
            "client_created",
            driver=driver_name or type(driver_client).__name__,
            capabilities=sorted(c.value for c in self._capabilities),
        )

    def __repr__(self) -> str:
        return f"Client(driver={self._driver_name or type(self._driver_client).__name__!r})"

    @property
    def driver_name(self) -> str:
        """Name of the driver the client was created with, if any."""
        return self._driver_name

    @property
    def dsn(self) -> str:
        return self._dsn

    @property
    def capabilities(self) -> FrozenSet[Capability]:
        return self._capabilities

    def supports(self, capability: Capability) -> bool:
        return capability in self._capabilities

    def _require(self, capability: Capability, message: str) -> Any:
        if capability not in self._capabilities:
            self._logger.debug("capability_unsupported", capability=capability.value)
            raise UnsupportedCapabilityError(message)
        return self._driver_client

    # =========================================================================
    # SERVER
    # =========================================================================

    def version(self, scope: Scope) -> Version:
        """Return the server's version and vendor information."""
        with driver_errors(self._logger, "version"):
            version = self._driver_client.version(scope)
        return Version.from_driver(version)

    def all_dbs(self, scope: Scope, options: driver.Options = None) -> List[str]:
        with driver_errors(self._logger, "all_dbs"):
            return list(self._driver_client.all_dbs(scope, options))

    def db_exists(self, scope: Scope, name: str, options: driver.Options = None) -> bool:
        with driver_errors(self._logger, "db_exists"):
            return bool(self._driver_client.db_exists(scope, name, options))

    def create_db(self, scope: Scope, name: str, options: driver.Options = None) -> None:
        with driver_errors(self._logger, "create_db"):
            self._driver_client.create_db(scope, name, options)
        self._logger.info("db_created", db=name)

    def destroy_db(self, scope: Scope, name: str, options: driver.Options = None) -> None:
        with driver_errors(self._logger, "destroy_db"):
            self._driver_client.destroy_db(scope, name, options)
        self._logger.info("db_destroyed", db=name)

    def db(self, name: str, options: driver.Options = None) -> DB:
        """Return a handle to database ``name``. Does not check that it exists."""
        with driver_errors(self._logger, "db"):
            driver_db = self._driver_client.db(name, options)
        return DB(name, driver_db, logger=self._logger)

    # =========================================================================
    # CLUSTER
    # =========================================================================

    def cluster_status(self, scope: Scope, options: driver.Options = None) -> str:
        """Return the node's cluster setup state, e.g. "cluster_finished".

        Raises:
            UnsupportedCapabilityError: the driver has no cluster support
        """
        cluster = self._require(Capability.CLUSTER, ERR_CLUSTER_UNSUPPORTED)
        with driver_errors(self._logger, "cluster_status"):
            return cluster.cluster_status(scope, options)

    def cluster_setup(self, scope: Scope, action: Any) -> None:
        """Perform a cluster setup action (a JSON-serializable request body)."""
        cluster = self._require(Capability.CLUSTER, ERR_CLUSTER_UNSUPPORTED)
        with driver_errors(self._logger, "cluster_setup"):
            cluster.cluster_setup(scope, action)

    def membership(self, scope: Scope) -> ClusterMembership:
        """Return the cluster's node lists.

        Raises:
            UnsupportedCapabilityError: the driver has no /_membership support
        """
        membership = self._require(Capability.MEMBERSHIP, ERR_MEMBERSHIP_UNSUPPORTED)
        with driver_errors(self._logger, "membership"):
            result = membership.membership(scope)
        return ClusterMembership.from_driver(result)

    # =========================================================================
    # FEEDS AND REPLICATION
    # =========================================================================

    def db_updates(self, scope: Scope) -> DBUpdates:
        """Open the server-wide database updates feed.

        No iterator is created if the driver fails to open the feed.
        The returned iterator is bound to ``scope``; cancelling it closes
        the iterator.
        """
        updater = self._require(Capability.DB_UPDATER, ERR_DB_UPDATER_UNSUPPORTED)
        with driver_errors(self._logger, "db_updates"):
            updates = updater.db_updates(scope)
        return DBUpdates(scope, updates, logger=self._logger)

    def replicate(
        self,
        scope: Scope,
        target: str,
        source: str,
        options: driver.Options = None,
    ) -> Replication:
        """Replicate ``source`` into ``target``."""
        replicator = self._require(Capability.REPLICATOR, ERR_REPLICATOR_UNSUPPORTED)
        with driver_errors(self._logger, "replicate"):
            replication = replicator.replicate(scope, target, source, options)
        self._logger.info(
            "replication_requested",
            source=source,
            target=target,
            state=replication.state,
        )
        return Replication.from_driver(replication)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close(self) -> None:
        """Release driver resources, if the driver holds any."""
        if not isinstance(self._driver_client, driver.Closer):
            return
        with driver_errors(self._logger, "close"):
            self._driver_client.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False


__all__ = [
    "Client",
]
