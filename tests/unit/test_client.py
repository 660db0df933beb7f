"""Unit tests for the Client facade: capability dispatch and error mapping."""

from http import HTTPStatus

import pytest

from davenport import driver
from davenport.client import Client
from davenport.db import DB
from davenport.driver import Capability
from davenport.errors import (
    DavenportError,
    DriverError,
    ScopeCancelled,
    UnsupportedCapabilityError,
    status_code,
)
from davenport.types import ClusterMembership, Replication, Version
from davenport.updates import DBUpdates

from fixtures.mocks.driver_mocks import (
    MockClient,
    MockCloser,
    MockCluster,
    MockDB,
    MockDBUpdater,
    MockDBUpdates,
    MockMembership,
    MockReplicator,
    updates_then,
)


class StatusError(Exception):
    def __init__(self, message, status):
        super().__init__(message)
        self.status = status


# =============================================================================
# CAPABILITIES
# =============================================================================


class TestCapabilities:
    """Capability detection on construction."""

    def test_required_only(self, mock_logger):
        client = Client(MockClient(), logger=mock_logger)
        assert client.capabilities == frozenset()

    @pytest.mark.parametrize("mock_class, capability", [
        (MockCluster, Capability.CLUSTER),
        (MockMembership, Capability.MEMBERSHIP),
        (MockDBUpdater, Capability.DB_UPDATER),
        (MockReplicator, Capability.REPLICATOR),
    ])
    def test_single_capability(self, mock_logger, mock_class, capability):
        client = Client(mock_class(), logger=mock_logger)

        assert client.capabilities == frozenset({capability})
        assert client.supports(capability) is True

    def test_memory_driver_has_every_capability(self, memory_driver, mock_logger):
        client = Client(memory_driver, logger=mock_logger)
        assert client.capabilities == frozenset(Capability)


# =============================================================================
# CLUSTER
# =============================================================================


class TestClusterStatus:

    def test_unsupported(self, scope, mock_logger):
        client = Client(MockClient(), logger=mock_logger)

        with pytest.raises(UnsupportedCapabilityError) as exc_info:
            client.cluster_status(scope)

        assert str(exc_info.value) == "driver does not support cluster operations"
        assert exc_info.value.status == HTTPStatus.NOT_IMPLEMENTED
        assert status_code(exc_info.value) == 501

    def test_backend_error(self, scope, mock_logger):
        def fail(scope, options):
            raise RuntimeError("client error")

        client = Client(MockCluster(cluster_status_func=fail), logger=mock_logger)

        with pytest.raises(DriverError) as exc_info:
            client.cluster_status(scope)

        assert str(exc_info.value) == "client error"
        assert status_code(exc_info.value) == 500
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        mock_logger.error.assert_called_once()

    def test_success(self, scope, mock_logger):
        client = Client(
            MockCluster(cluster_status_func=lambda scope, options: "cluster_finished"),
            logger=mock_logger,
        )

        assert client.cluster_status(scope) == "cluster_finished"

    def test_options_are_passed(self, scope, mock_logger):
        received = {}

        def status(scope, options):
            received.update(options)
            return "cluster_enabled"

        client = Client(MockCluster(cluster_status_func=status), logger=mock_logger)
        client.cluster_status(scope, {"ensure_dbs_exist": ["_users"]})

        assert received == {"ensure_dbs_exist": ["_users"]}

    def test_status_carrying_error_passes_through(self, scope, mock_logger):
        err = StatusError("forbidden", 403)

        def fail(scope, options):
            raise err

        client = Client(MockCluster(cluster_status_func=fail), logger=mock_logger)

        with pytest.raises(StatusError) as exc_info:
            client.cluster_status(scope)

        assert exc_info.value is err
        assert status_code(exc_info.value) == 403


class TestClusterSetup:

    def test_unsupported(self, scope, mock_logger):
        client = Client(MockClient(), logger=mock_logger)

        with pytest.raises(UnsupportedCapabilityError, match="driver does not support cluster operations"):
            client.cluster_setup(scope, {"action": "finish_cluster"})

    def test_success(self, scope, mock_logger):
        actions = []
        client = Client(
            MockCluster(cluster_setup_func=lambda scope, action: actions.append(action)),
            logger=mock_logger,
        )

        client.cluster_setup(scope, {"action": "finish_cluster"})

        assert actions == [{"action": "finish_cluster"}]

    def test_backend_error(self, scope, mock_logger):
        def fail(scope, action):
            raise RuntimeError("setup failed")

        client = Client(MockCluster(cluster_setup_func=fail), logger=mock_logger)

        with pytest.raises(DavenportError) as exc_info:
            client.cluster_setup(scope, {"action": "finish_cluster"})

        assert exc_info.value.status == 500
        assert str(exc_info.value) == "setup failed"


class TestMembership:

    def test_unsupported(self, scope, mock_logger):
        client = Client(MockClient(), logger=mock_logger)

        with pytest.raises(UnsupportedCapabilityError) as exc_info:
            client.membership(scope)

        assert str(exc_info.value) == "driver does not support the /_membership endpoint"
        assert exc_info.value.status == 501

    def test_backend_error(self, scope, mock_logger):
        def fail(scope):
            raise RuntimeError("membership failed")

        client = Client(MockMembership(membership_func=fail), logger=mock_logger)

        with pytest.raises(DriverError) as exc_info:
            client.membership(scope)

        assert status_code(exc_info.value) == 500

    def test_success(self, scope, mock_logger):
        result = driver.ClusterMembership(
            all_nodes=["one", "two", "three"],
            cluster_nodes=["one", "two"],
        )
        client = Client(MockMembership(membership_func=lambda scope: result), logger=mock_logger)

        membership = client.membership(scope)

        assert membership == ClusterMembership(
            all_nodes=["one", "two", "three"],
            cluster_nodes=["one", "two"],
        )
        # The library record does not alias the driver's lists
        result.all_nodes.append("four")
        assert membership.all_nodes == ["one", "two", "three"]


# =============================================================================
# DB UPDATES
# =============================================================================


class TestDBUpdates:

    def test_unsupported(self, scope, mock_logger):
        client = Client(MockClient(), logger=mock_logger)

        with pytest.raises(UnsupportedCapabilityError) as exc_info:
            client.db_updates(scope)

        assert str(exc_info.value) == "driver does not implement DBUpdater"
        assert exc_info.value.status == 501

    def test_driver_error_creates_no_iterator(self, scope, mock_logger):
        def fail(scope):
            raise RuntimeError("db updates failed")

        client = Client(MockDBUpdater(db_updates_func=fail), logger=mock_logger)

        with pytest.raises(DriverError, match="db updates failed"):
            client.db_updates(scope)

    def test_success(self, scope, mock_logger):
        feed = MockDBUpdates(next_func=updates_then([
            {"db_name": "foo", "type": "created", "seq": "1"},
        ]))
        client = Client(MockDBUpdater(db_updates_func=lambda scope: feed), logger=mock_logger)

        updates = client.db_updates(scope)

        assert isinstance(updates, DBUpdates)
        assert updates.next() is True
        assert (updates.db_name, updates.type, updates.seq) == ("foo", "created", "1")
        assert updates.next() is False
        assert updates.err() is None
        assert feed.close_calls == 1

    def test_iterator_bound_to_scope(self, mock_logger):
        from davenport.scope import background

        parent = background()
        feed = MockDBUpdates(next_func=updates_then([{"db_name": "foo"}]))
        client = Client(MockDBUpdater(db_updates_func=lambda scope: feed), logger=mock_logger)
        updates = client.db_updates(parent)

        parent.cancel()

        assert updates.closed is True
        assert isinstance(updates.err(), ScopeCancelled)


# =============================================================================
# REPLICATION
# =============================================================================


class TestReplicate:

    def test_unsupported(self, scope, mock_logger):
        client = Client(MockClient(), logger=mock_logger)

        with pytest.raises(UnsupportedCapabilityError, match="driver does not support replication"):
            client.replicate(scope, "target", "source")

    def test_success(self, scope, mock_logger):
        def replicate(scope, target, source, options):
            return driver.Replication(
                replication_id="r1",
                source=source,
                target=target,
                state="completed",
                docs_written=3,
            )

        client = Client(MockReplicator(replicate_func=replicate), logger=mock_logger)

        result = client.replicate(scope, "copy", "orders", {"create_target": True})

        assert result == Replication(
            replication_id="r1",
            source="orders",
            target="copy",
            state="completed",
            docs_written=3,
        )


# =============================================================================
# REQUIRED OPERATIONS
# =============================================================================


class TestServerOperations:

    def test_version(self, scope, mock_logger):
        client = Client(
            MockClient(version_func=lambda scope: driver.Version(version="3.3.3", vendor="ASF", features=["x"])),
            logger=mock_logger,
        )

        assert client.version(scope) == Version(version="3.3.3", vendor="ASF", features=("x",))

    def test_all_dbs(self, scope, mock_logger):
        client = Client(MockClient(all_dbs_func=lambda scope, options: ["a", "b"]), logger=mock_logger)
        assert client.all_dbs(scope) == ["a", "b"]

    def test_db_exists(self, scope, mock_logger):
        client = Client(
            MockClient(db_exists_func=lambda scope, name, options: name == "a"),
            logger=mock_logger,
        )

        assert client.db_exists(scope, "a") is True
        assert client.db_exists(scope, "b") is False

    def test_create_and_destroy(self, scope, mock_logger):
        calls = []
        client = Client(
            MockClient(
                create_db_func=lambda scope, name, options: calls.append(("create", name)),
                destroy_db_func=lambda scope, name, options: calls.append(("destroy", name)),
            ),
            logger=mock_logger,
        )

        client.create_db(scope, "orders")
        client.destroy_db(scope, "orders")

        assert calls == [("create", "orders"), ("destroy", "orders")]

    def test_create_error_keeps_status(self, scope, mock_logger):
        def fail(scope, name, options):
            raise StatusError("The database could not be created, the file already exists.", 412)

        client = Client(MockClient(create_db_func=fail), logger=mock_logger)

        with pytest.raises(StatusError) as exc_info:
            client.create_db(scope, "orders")

        assert status_code(exc_info.value) == 412

    def test_scope_cause_is_not_wrapped(self, scope, mock_logger):
        def cancelled(scope):
            raise ScopeCancelled()

        client = Client(MockClient(version_func=cancelled), logger=mock_logger)

        with pytest.raises(ScopeCancelled):
            client.version(scope)

    def test_db_handle(self, mock_logger):
        driver_db = MockDB()
        client = Client(MockClient(db_func=lambda name, options: driver_db), logger=mock_logger)

        db = client.db("orders")

        assert isinstance(db, DB)
        assert db.name == "orders"


class TestClose:

    def test_close_without_closer_is_noop(self, mock_logger):
        Client(MockClient(), logger=mock_logger).close()

    def test_close_calls_driver(self, mock_logger):
        calls = []
        client = Client(MockCloser(close_func=lambda: calls.append("close")), logger=mock_logger)

        with client:
            pass

        assert calls == ["close"]
