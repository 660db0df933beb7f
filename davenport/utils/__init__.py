"""Utility helpers shared across davenport modules."""

from davenport.utils.rwlock import RWLock

__all__ = [
    "RWLock",
]
