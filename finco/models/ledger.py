"""
Core Data Models for FinCo

These models define the schemas for everything held in the ledger.
They are designed to:
1. Be immutable (every change produces a new value)
2. Enforce the closed category / type / method enumerations
3. Be serializable for the advisor snapshot and the audit trail

DESIGN DECISION: Money is Decimal, never float.
Balances are reconciled against the transaction list, so rounding drift
would show up as a broken invariant.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def new_id() -> str:
    """Opaque unique token for ledger records."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """Spending categories a transaction can carry."""
    FOOD = "Food"
    TRANSPORT = "Transport"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    SALARY = "Salary"
    TRANSFER = "Transfer"
    OTHER = "Other"


class TransactionType(str, Enum):
    """Direction of money relative to the wallet."""
    DEBIT = "debit"
    CREDIT = "credit"


class PaymentMethod(str, Enum):
    UPI = "UPI"
    CARD = "Card"
    BANK_TRANSFER = "Bank Transfer"
    CRYPTO = "Crypto"


class BlockStatus(str, Enum):
    """Cosmetic on-chain status shown next to a provenance hash."""
    PENDING = "pending"
    VERIFIED = "verified"


class VaultDirection(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger entry.

    Immutable once created. The only supported change is removal,
    which reverses the balance effect it had.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    date: date
    merchant: str = Field(..., max_length=200)
    amount: Decimal = Field(..., ge=0)
    category: Category
    type: TransactionType
    method: PaymentMethod

    # Provenance - purely cosmetic, never validated
    tx_hash: Optional[str] = None
    block_status: Optional[BlockStatus] = None

    @property
    def signed_amount(self) -> Decimal:
        """Balance effect of this transaction: +amount for credit, -amount for debit."""
        if self.type == TransactionType.CREDIT:
            return self.amount
        return -self.amount

    @property
    def is_debit(self) -> bool:
        return self.type == TransactionType.DEBIT


class TransactionDraft(BaseModel):
    """
    Partial transaction input, as typed by the user or parsed by the advisor.

    Every field is optional. The defaults applied when a field is missing
    are listed in DEFAULTS and used by the add-transaction reducer.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    merchant: Optional[str] = Field(default=None, max_length=200)
    amount: Optional[Decimal] = None
    category: Optional[Category] = None
    type: Optional[TransactionType] = None
    method: Optional[PaymentMethod] = None

    DEFAULTS: ClassVar[dict] = {
        "merchant": "Unknown",
        "amount": Decimal("0"),
        "category": Category.OTHER,
        "type": TransactionType.DEBIT,
        "method": PaymentMethod.UPI,
    }

    def resolved(self) -> dict:
        """Field values with every missing (or blank) entry replaced by its default."""
        return {
            "merchant": self.merchant or self.DEFAULTS["merchant"],
            "amount": self.amount if self.amount is not None else self.DEFAULTS["amount"],
            "category": self.category or self.DEFAULTS["category"],
            "type": self.type or self.DEFAULTS["type"],
            "method": self.method or self.DEFAULTS["method"],
        }


class Bill(BaseModel):
    """An upcoming bill. Paying it flips is_paid once; there is no un-pay."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0)
    due_date: date
    is_paid: bool = False


class Goal(BaseModel):
    """
    A savings goal funded by staking from the wallet.

    current_amount only grows, through stake operations.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(default=Decimal("0"), ge=0)
    deadline: date
    smart_contract_address: Optional[str] = None
    apy: Optional[float] = Field(
        default=None,
        ge=0,
        description="Annual yield percentage (decorative)"
    )


class LedgerState(BaseModel):
    """
    The aggregate root: everything the dashboard knows about the user.

    One instance per session, replaced (never mutated) by each reducer.
    Transactions are ordered newest-first.

    opening_balance is the wallet balance before any transaction currently
    in the ledger was applied, so that
        current_balance == opening_balance + sum(signed amounts)
    can be checked from the state alone.
    """
    model_config = ConfigDict(frozen=True)

    monthly_income: Decimal
    current_balance: Decimal
    vault_balance: Decimal = Decimal("0")
    opening_balance: Decimal = Decimal("0")
    wallet_address: Optional[str] = None
    fin_tokens: int = Field(default=0, ge=0)

    transactions: tuple[Transaction, ...] = ()
    bills: tuple[Bill, ...] = ()
    goals: tuple[Goal, ...] = ()
    budgets: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def wallet_connected(self) -> bool:
        return bool(self.wallet_address)

    @property
    def unpaid_bills(self) -> tuple[Bill, ...]:
        return tuple(b for b in self.bills if not b.is_paid)

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return next((t for t in self.transactions if t.id == transaction_id), None)

    def find_bill(self, bill_id: str) -> Optional[Bill]:
        return next((b for b in self.bills if b.id == bill_id), None)

    def find_goal(self, goal_id: str) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    def reconciled_balance(self) -> Decimal:
        """Balance implied by opening_balance and the transactions present."""
        return self.opening_balance + sum(
            (t.signed_amount for t in self.transactions), Decimal("0")
        )

    @property
    def is_reconciled(self) -> bool:
        return self.current_balance == self.reconciled_balance()


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'insufficient_funds')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one ledger event at the boundary.

    Stage 1: Schema validation (required fields, positive amounts)
    Stage 2: Semantic validation (checks against the current ledger)
    """

    event_kind: str = Field(
        ...,
        description="Kind of event that was validated"
    )
    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )

    schema_valid: bool
    semantic_valid: bool

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def is_valid(self) -> bool:
        """Warnings never block an event; errors always do."""
        return not self.has_errors

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
