"""Built-in drivers.

Importing this package registers:
    memory            in-process server (davenport.backends.memory)
    couchdb, http,    CouchDB HTTP server (davenport.backends.couchdb)
    https
"""

from davenport.backends.couchdb import CouchDBClient, new_couchdb_client
from davenport.backends.memory import MemoryClient, new_memory_client
from davenport.registry import register_driver


def register_builtin_drivers() -> None:
    """Register the built-in drivers. Safe to call repeatedly."""
    register_driver("memory", new_memory_client)
    for name in ("couchdb", "http", "https"):
        register_driver(name, new_couchdb_client)


register_builtin_drivers()


__all__ = [
    "CouchDBClient",
    "MemoryClient",
    "new_couchdb_client",
    "new_memory_client",
    "register_builtin_drivers",
]
