"""
CSV export of the transaction ledger.

One row per transaction, in ledger order (newest first).
"""

import csv
import io
from typing import Iterable

from finco.models.ledger import LedgerState, Transaction


CSV_COLUMNS = ["Date", "Merchant", "Category", "Amount", "Type", "Method", "TxHash"]


def _row(transaction: Transaction) -> list[str]:
    return [
        transaction.date.isoformat(),
        transaction.merchant,
        transaction.category.value,
        str(transaction.amount),
        transaction.type.value,
        transaction.method.value,
        transaction.tx_hash or "",
    ]


def write_transactions_csv(transactions: Iterable[Transaction], stream) -> int:
    """Write the header and one row per transaction to `stream`. Returns the row count."""
    writer = csv.writer(stream)
    writer.writerow(CSV_COLUMNS)
    count = 0
    for transaction in transactions:
        writer.writerow(_row(transaction))
        count += 1
    return count


def transactions_to_csv(state: LedgerState) -> str:
    """Render the whole ledger as CSV text."""
    buffer = io.StringIO()
    write_transactions_csv(state.transactions, buffer)
    return buffer.getvalue()
