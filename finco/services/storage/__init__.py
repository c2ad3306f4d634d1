"""
Storage Services Package

Provides the audit storage interface and the session-scoped
in-memory implementation.
"""

from finco.services.storage.interface import (
    AuditStorageInterface,
    StorageError,
)
from finco.services.storage.memory import InMemoryAuditStorage

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    # Exceptions
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
]
