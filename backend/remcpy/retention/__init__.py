"""Retention module: delayed deletion of stored objects.

Services:
    - RetentionScheduler: single heap-driven timer loop that turns expired
      uploads into removal tasks.
    - ReclaimWorker: single consumer that deletes each expired entry.
"""
from .scheduler import RetentionScheduler
from .worker import ReclaimWorker

__all__ = ["ReclaimWorker", "RetentionScheduler"]
