"""Services package."""

from finco.services.export import (
    CSV_COLUMNS,
    transactions_to_csv,
    write_transactions_csv,
)
from finco.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    StorageError,
)

__all__ = [
    # Export
    "CSV_COLUMNS",
    "transactions_to_csv",
    "write_transactions_csv",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "StorageError",
]
