"""Scalability layer: keyed distributed locking. No FastAPI."""

from keyadmin.scalability.distributed_lock import DistributedLock

__all__ = [
    "DistributedLock",
]
