"""Mock implementations for testing davenport.

Usage:
    from fixtures.mocks import MockClient, MockCluster, MockFeed
"""

from .driver_mocks import (
    MockClient,
    MockCluster,
    MockMembership,
    MockDBUpdater,
    MockReplicator,
    MockCloser,
    MockDB,
    MockDBUpdates,
    MockChanges,
    MockRows,
    MockFeed,
    values_then,
    updates_then,
    make_memory_client,
)

__all__ = [
    # Clients
    "MockClient",
    "MockCluster",
    "MockMembership",
    "MockDBUpdater",
    "MockReplicator",
    "MockCloser",
    "MockDB",
    # Feeds
    "MockDBUpdates",
    "MockChanges",
    "MockRows",
    "MockFeed",
    # Factories
    "values_then",
    "updates_then",
    "make_memory_client",
]
