"""Ledger export."""

from finco.services.export.csv_export import (
    CSV_COLUMNS,
    transactions_to_csv,
    write_transactions_csv,
)

__all__ = ["CSV_COLUMNS", "transactions_to_csv", "write_transactions_csv"]
