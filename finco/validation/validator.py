"""
Two-Stage Ledger Event Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Positive / non-negative amounts
- Blank names and recipients
- This catches malformed form input and bad advisor parses

STAGE 2 - SEMANTIC VALIDATION:
- Checks against the current LedgerState
- Unknown goal / bill / transaction ids
- Insufficient wallet or vault funds
- Duplicate goal ids
- This catches actions that are well-formed but impossible right now

Stage 2 only runs when stage 1 passes.

IMPORTANT: Validation NEVER silently fixes input.
The reducers are total and would quietly no-op or overdraw; the validator
is where the user gets told.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from finco.config import get_settings
from finco.models.events import (
    AddGoal,
    AddTransaction,
    ConnectWallet,
    DeleteTransaction,
    LedgerEventBase,
    MarkBillPaid,
    P2PTransfer,
    StakeToGoal,
    UpdateBudget,
    UpdateIncome,
    VaultTransfer,
)
from finco.models.ledger import (
    Category,
    LedgerState,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    VaultDirection,
)


class LedgerValidator:
    """
    Validates ledger events through a two-stage pipeline.

    Stage 1: Schema validation (needs only the event)
    Stage 2: Semantic validation (needs the current ledger)
    """

    def __init__(self, currency_symbol: Optional[str] = None):
        """
        Initialize validator.

        Args:
            currency_symbol: Symbol used in messages. Defaults to the
                             configured CURRENCY_SYMBOL.
        """
        self._currency = currency_symbol or get_settings().app.currency_symbol

    def _money(self, amount: Decimal) -> str:
        return f"{self._currency}{amount:,.2f}"

    @staticmethod
    def _positive_amount(amount: Optional[Decimal], field: str = "amount") -> list[ValidationIssue]:
        if amount is None:
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message="Amount is required",
                severity="error",
                suggested_fix="Enter an amount greater than zero",
            )]
        if amount <= 0:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter an amount greater than zero",
            )]
        return []

    def _validate_schema(
        self,
        event: LedgerEventBase,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if isinstance(event, AddTransaction):
            draft = event.draft
            if draft.amount is None:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="No amount given; the transaction will be logged as 0",
                    severity="warning",
                    suggested_fix="Enter the amount you paid or received",
                ))
            elif draft.amount < 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount cannot be negative",
                    severity="error",
                    suggested_fix="Use the credit/debit type instead of a sign",
                ))
            if not draft.merchant:
                issues.append(ValidationIssue(
                    field="merchant",
                    issue_type="missing",
                    message="No merchant given; it will be logged as 'Unknown'",
                    severity="warning",
                ))

        elif isinstance(event, (StakeToGoal, VaultTransfer)):
            issues.extend(self._positive_amount(event.amount))

        elif isinstance(event, P2PTransfer):
            issues.extend(self._positive_amount(event.amount))
            if not event.recipient:
                issues.append(ValidationIssue(
                    field="recipient",
                    issue_type="missing",
                    message="Recipient is required",
                    severity="error",
                    suggested_fix="Enter a name, UPI id or wallet address",
                ))

        elif isinstance(event, UpdateIncome):
            if event.monthly_income < 0:
                issues.append(ValidationIssue(
                    field="monthly_income",
                    issue_type="invalid_value",
                    message="Monthly income cannot be negative",
                    severity="error",
                ))

        elif isinstance(event, UpdateBudget):
            if not event.category:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="missing",
                    message="Budget category is required",
                    severity="error",
                ))
            if event.limit < 0:
                issues.append(ValidationIssue(
                    field="limit",
                    issue_type="invalid_value",
                    message="Budget limit cannot be negative",
                    severity="error",
                ))

        elif isinstance(event, ConnectWallet):
            if event.address and not event.address.startswith("0x"):
                issues.append(ValidationIssue(
                    field="address",
                    issue_type="suspicious_value",
                    message="Wallet address does not look like a hex address",
                    severity="warning",
                    suggested_fix="Addresses usually start with 0x",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        event: LedgerEventBase,
        state: LedgerState,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation against the current ledger.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        balance = state.current_balance

        if isinstance(event, AddTransaction):
            draft = event.draft
            is_debit = (draft.type or TransactionType.DEBIT) == TransactionType.DEBIT
            if is_debit and draft.amount and draft.amount > balance:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="overdraft",
                    message=f"This takes your balance below zero ({self._money(balance)} available)",
                    severity="warning",
                ))

        elif isinstance(event, DeleteTransaction):
            if state.find_transaction(event.transaction_id) is None:
                issues.append(ValidationIssue(
                    field="transaction_id",
                    issue_type="not_found",
                    message="Transaction no longer exists; nothing will change",
                    severity="warning",
                ))

        elif isinstance(event, MarkBillPaid):
            bill = state.find_bill(event.bill_id)
            if bill is None:
                issues.append(ValidationIssue(
                    field="bill_id",
                    issue_type="not_found",
                    message="Bill not found; nothing will change",
                    severity="warning",
                ))
            elif bill.is_paid:
                issues.append(ValidationIssue(
                    field="bill_id",
                    issue_type="already_paid",
                    message=f"{bill.name} is already paid",
                    severity="warning",
                ))
            elif bill.amount > balance:
                issues.append(ValidationIssue(
                    field="bill_id",
                    issue_type="overdraft",
                    message=(
                        f"Paying {bill.name} ({self._money(bill.amount)}) takes your "
                        f"balance below zero"
                    ),
                    severity="warning",
                ))

        elif isinstance(event, AddGoal):
            if state.find_goal(event.goal.id) is not None:
                issues.append(ValidationIssue(
                    field="goal.id",
                    issue_type="duplicate",
                    message=f"A goal with id {event.goal.id} already exists",
                    severity="error",
                ))
            if event.goal.deadline < today:
                issues.append(ValidationIssue(
                    field="goal.deadline",
                    issue_type="past_date",
                    message=f"Deadline ({event.goal.deadline}) is in the past",
                    severity="warning",
                    suggested_fix="Pick a future deadline",
                ))

        elif isinstance(event, StakeToGoal):
            if state.find_goal(event.goal_id) is None:
                issues.append(ValidationIssue(
                    field="goal_id",
                    issue_type="not_found",
                    message="Goal not found",
                    severity="error",
                ))
            issues.extend(self._funds_check(event.amount, balance, "wallet"))

        elif isinstance(event, P2PTransfer):
            issues.extend(self._funds_check(event.amount, balance, "wallet"))

        elif isinstance(event, VaultTransfer):
            if event.direction == VaultDirection.DEPOSIT:
                issues.extend(self._funds_check(event.amount, balance, "wallet"))
            else:
                issues.extend(self._funds_check(event.amount, state.vault_balance, "vault"))

        elif isinstance(event, UpdateBudget):
            if event.category not in {c.value for c in Category}:
                issues.append(ValidationIssue(
                    field="category",
                    issue_type="custom_category",
                    message=(
                        f"'{event.category}' is not a transaction category; "
                        f"no spend will be counted against it"
                    ),
                    severity="info",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _funds_check(
        self,
        amount: Decimal,
        available: Decimal,
        source: str,
    ) -> list[ValidationIssue]:
        if amount <= available:
            return []
        return [ValidationIssue(
            field="amount",
            issue_type="insufficient_funds",
            message=(
                f"Insufficient {source} funds: {self._money(amount)} requested, "
                f"{self._money(available)} available"
            ),
            severity="error",
            suggested_fix=f"Enter at most {self._money(available)}",
        )]

    def validate(
        self,
        event: LedgerEventBase,
        state: LedgerState,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run the full two-stage validation pipeline.

        Args:
            event: The ledger event about to be applied
            state: The ledger it would be applied to
            today: Reference date for deadline checks

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(event)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                event, state, today or date.today()
            )
            all_issues.extend(semantic_issues)

        return ValidationResult(
            event_kind=event.kind,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=all_issues,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what the dashboard shows next to the form.
        """
        warnings = [i for i in result.issues if i.severity == "warning"]
        if result.is_valid and not warnings:
            return "✅ All checks passed."

        lines = []

        if result.has_errors:
            lines.append("❌ This can't be done yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please note:")
            for issue in warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
