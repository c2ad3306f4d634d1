"""
Data Models Package

This package contains all Pydantic models used by FinCo.
Everything held in the ledger, every event applied to it, and every
audit record conforms to these schemas.
"""

from finco.models.ledger import (
    Bill,
    BlockStatus,
    Category,
    Goal,
    LedgerState,
    PaymentMethod,
    Transaction,
    TransactionDraft,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    VaultDirection,
    new_id,
)
from finco.models.events import (
    AddGoal,
    AddTransaction,
    ConnectWallet,
    DeleteTransaction,
    DisconnectWallet,
    LedgerEvent,
    MarkBillPaid,
    P2PTransfer,
    StakeToGoal,
    UpdateBudget,
    UpdateIncome,
    VaultTransfer,
)
from finco.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "Bill",
    "BlockStatus",
    "Category",
    "Goal",
    "LedgerState",
    "PaymentMethod",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "VaultDirection",
    "new_id",
    # Events
    "AddGoal",
    "AddTransaction",
    "ConnectWallet",
    "DeleteTransaction",
    "DisconnectWallet",
    "LedgerEvent",
    "MarkBillPaid",
    "P2PTransfer",
    "StakeToGoal",
    "UpdateBudget",
    "UpdateIncome",
    "VaultTransfer",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
