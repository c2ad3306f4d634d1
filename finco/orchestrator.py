"""
Main Orchestrator for FinCo

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger actions (event → validate → [settle] → reduce → audit)
2. Advisor (report → chat, and free-text transaction parsing)

DESIGN DECISION: The orchestrator enforces the boundaries:
- The session is the single owner of the current LedgerState
- No event reaches a reducer without passing validation
- A contract-style operation cannot be submitted twice while pending
- A stale advisor report never overwrites a newer one
- Every step is audited

This is the "glue" that keeps the ledger consistent even when the
advisor or the user behaves unexpectedly.
"""

import asyncio
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from finco.agents import AdvisorClient, AdvisorResult, ChatTurn, ParseResult
from finco.analytics import DashboardSnapshot, dashboard_snapshot
from finco.audit import AuditLogger, create_correlation_id
from finco.config import get_settings
from finco.ledger import apply, initial_ledger
from finco.models.events import (
    AddGoal,
    AddTransaction,
    ConnectWallet,
    DeleteTransaction,
    DisconnectWallet,
    LedgerEventBase,
    MarkBillPaid,
    P2PTransfer,
    StakeToGoal,
    UpdateBudget,
    UpdateIncome,
    VaultTransfer,
)
from finco.models.ledger import (
    Goal,
    LedgerState,
    TransactionDraft,
    ValidationResult,
    VaultDirection,
)
from finco.services.export import transactions_to_csv
from finco.services.storage import AuditStorageInterface, InMemoryAuditStorage
from finco.validation import LedgerValidator


class SessionError(Exception):
    """Base exception for session-level refusals."""
    pass


class LedgerError(SessionError):
    """A ledger action was refused."""
    pass


class DuplicateSubmissionError(LedgerError):
    """The same kind of operation is already pending."""

    def __init__(self, kind: str):
        super().__init__(f"A {kind.replace('_', ' ')} is already in progress")
        self.kind = kind


class AdvisorStateError(SessionError):
    """The advisor is not in a state that allows this action."""
    pass


# =============================================================================
# LEDGER SESSION
# =============================================================================

class LedgerSession:
    """
    Owns the current LedgerState and applies events to it.

    Flow per event:
    1. Refuse if an operation of the same kind is already settling
    2. Validate (two stages) against the current state
    3. Settlement delay for stake / P2P / vault operations
    4. Re-validate, since the ledger may have moved during the delay
    5. Reduce and store the new state
    6. Audit the outcome

    Invalid events leave the state untouched.
    """

    def __init__(
        self,
        state: Optional[LedgerState] = None,
        validator: Optional[LedgerValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        network_delay_seconds: Optional[float] = None,
    ):
        self._state = state or initial_ledger()
        self._validator = validator or LedgerValidator()
        self._audit_logger = audit_logger
        if network_delay_seconds is None:
            network_delay_seconds = get_settings().app.simulated_network_delay_seconds
        self._network_delay = network_delay_seconds
        self._pending: set[str] = set()

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def pending_operations(self) -> frozenset[str]:
        """Kinds of contract-style operations currently settling."""
        return frozenset(self._pending)

    def is_pending(self, kind: str) -> bool:
        return kind in self._pending

    def preview(self, event: LedgerEventBase) -> ValidationResult:
        """Validate an event against the current state without applying it."""
        return self._validator.validate(event, self._state, today=event.occurred_on)

    def summarize(self, result: ValidationResult) -> str:
        return self._validator.get_user_friendly_summary(result)

    async def submit(
        self,
        event: LedgerEventBase,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[bool, ValidationResult]:
        """
        Validate and apply one ledger event.

        Returns:
            (changed, validation_result)
            changed is False when the event was rejected or was a no-op.

        Raises:
            DuplicateSubmissionError: If the same kind of operation is pending
            LedgerError: If the reducer fails; the state is left unchanged
        """
        correlation_id = correlation_id or create_correlation_id()
        kind = event.kind

        if event.requires_settlement and kind in self._pending:
            if self._audit_logger:
                await self._audit_logger.log_duplicate_submission(
                    kind=kind,
                    correlation_id=correlation_id,
                )
            raise DuplicateSubmissionError(kind)

        result = self.preview(event)
        if not result.is_valid:
            await self._audit_rejection(kind, result, correlation_id)
            return False, result

        if event.requires_settlement:
            self._pending.add(kind)
            try:
                await asyncio.sleep(self._network_delay)
            finally:
                self._pending.discard(kind)

            result = self.preview(event)
            if not result.is_valid:
                await self._audit_rejection(kind, result, correlation_id)
                return False, result

        before = self._state
        try:
            after = apply(before, event)
        except Exception as e:
            if self._audit_logger:
                await self._audit_logger.log_error(
                    error_type="reducer_failed",
                    error_message=str(e),
                    details={"kind": kind},
                    correlation_id=correlation_id,
                )
            raise LedgerError(f"Could not apply {kind}: {e}") from e
        self._state = after

        changed = after is not before
        if self._audit_logger:
            if changed:
                await self._audit_logger.log_ledger_event_applied(
                    kind=kind,
                    entity_id=self._entity_id(event, before, after),
                    balance_before=str(before.current_balance),
                    balance_after=str(after.current_balance),
                    tokens_awarded=after.fin_tokens - before.fin_tokens,
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_ledger_event_ignored(
                    kind=kind,
                    reason="nothing to change",
                    correlation_id=correlation_id,
                )

        return changed, result

    async def _audit_rejection(
        self,
        kind: str,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                kind=kind,
                issues=[i for i in result.issues if i.severity == "error"],
                correlation_id=correlation_id,
            )

    @staticmethod
    def _entity_id(
        event: LedgerEventBase,
        before: LedgerState,
        after: LedgerState,
    ) -> Optional[str]:
        """Id of the record the event touched, for the audit trail."""
        if isinstance(event, DeleteTransaction):
            return event.transaction_id
        if isinstance(event, MarkBillPaid):
            return event.bill_id
        if isinstance(event, AddGoal):
            return event.goal.id
        if isinstance(event, StakeToGoal):
            return event.goal_id
        if isinstance(event, UpdateBudget):
            return event.category
        if isinstance(event, (ConnectWallet, DisconnectWallet)):
            return after.wallet_address or before.wallet_address
        if len(after.transactions) > len(before.transactions):
            return after.transactions[0].id
        return None

    # -------------------------------------------------------------------------
    # Convenience wrappers, one per dashboard action
    # -------------------------------------------------------------------------

    async def add_transaction(self, draft: TransactionDraft, on: Optional[date] = None):
        return await self.submit(AddTransaction(draft=draft, occurred_on=on or date.today()))

    async def delete_transaction(self, transaction_id: str):
        return await self.submit(DeleteTransaction(transaction_id=transaction_id))

    async def mark_bill_paid(self, bill_id: str, on: Optional[date] = None):
        return await self.submit(MarkBillPaid(bill_id=bill_id, occurred_on=on or date.today()))

    async def add_goal(self, goal: Goal):
        return await self.submit(AddGoal(goal=goal))

    async def stake_to_goal(self, goal_id: str, amount: Decimal, on: Optional[date] = None):
        return await self.submit(
            StakeToGoal(goal_id=goal_id, amount=amount, occurred_on=on or date.today())
        )

    async def update_income(self, monthly_income: Decimal):
        return await self.submit(UpdateIncome(monthly_income=monthly_income))

    async def update_budget(self, category: str, limit: Decimal):
        return await self.submit(UpdateBudget(category=category, limit=limit))

    async def send_money(self, recipient: str, amount: Decimal, on: Optional[date] = None):
        return await self.submit(
            P2PTransfer(recipient=recipient, amount=amount, occurred_on=on or date.today())
        )

    async def vault_transfer(
        self,
        amount: Decimal,
        direction: VaultDirection,
        on: Optional[date] = None,
    ):
        return await self.submit(
            VaultTransfer(amount=amount, direction=direction, occurred_on=on or date.today())
        )

    async def connect_wallet(self, address: Optional[str] = None):
        return await self.submit(ConnectWallet(address=address))

    async def disconnect_wallet(self):
        return await self.submit(DisconnectWallet())

    def snapshot(self, today: Optional[date] = None) -> DashboardSnapshot:
        return dashboard_snapshot(self._state, today)

    def export_csv(self) -> str:
        return transactions_to_csv(self._state)


# =============================================================================
# ADVISOR SESSION
# =============================================================================

class AdvisorPhase(str, Enum):
    IDLE = "idle"
    REQUESTING = "requesting"
    REPORT_READY = "report_ready"
    FAILED = "failed"


class ChatPhase(str, Enum):
    IDLE = "idle"
    SENDING = "sending"


class AdvisorSession:
    """
    Advisor state machine for one user session.

    Report: idle → requesting → report_ready | failed
    Chat (only from report_ready): idle → sending → idle

    Requesting a new report resets the chat. Each request is numbered;
    a response that arrives after a newer request started is discarded.
    """

    def __init__(
        self,
        client: Optional[AdvisorClient] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client or AdvisorClient()
        self._audit_logger = audit_logger

        self._phase = AdvisorPhase.IDLE
        self._chat_phase = ChatPhase.IDLE
        self._report: Optional[str] = None
        self._last_result: Optional[AdvisorResult] = None
        self._history: list[ChatTurn] = []
        self._request_number = 0

    @property
    def phase(self) -> AdvisorPhase:
        return self._phase

    @property
    def chat_phase(self) -> ChatPhase:
        return self._chat_phase

    @property
    def report(self) -> Optional[str]:
        return self._report

    @property
    def last_result(self) -> Optional[AdvisorResult]:
        return self._last_result

    @property
    def history(self) -> list[ChatTurn]:
        return list(self._history)

    async def request_report(
        self,
        state: LedgerState,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[AdvisorResult]:
        """
        Generate (or regenerate) the analysis report.

        Returns:
            The AdvisorResult, or None if a newer request superseded this one
        """
        correlation_id = correlation_id or create_correlation_id()
        self._request_number += 1
        request_number = self._request_number

        self._phase = AdvisorPhase.REQUESTING
        self._report = None
        self._history = []

        if self._audit_logger:
            await self._audit_logger.log_analysis_requested(
                request_number=request_number,
                transaction_count=len(state.transactions),
                correlation_id=correlation_id,
            )

        result = await self._client.request_analysis(state)

        if request_number != self._request_number:
            if self._audit_logger:
                await self._audit_logger.log_analysis_discarded(
                    request_number=request_number,
                    latest_request=self._request_number,
                    correlation_id=correlation_id,
                )
            return None

        self._last_result = result
        if result.ok:
            self._phase = AdvisorPhase.REPORT_READY
            self._report = result.text
            self._history = [ChatTurn(role="model", content=result.text)]
        else:
            self._phase = AdvisorPhase.FAILED
            await self._audit_failure(result, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_analysis_completed(
                request_number=request_number,
                ok=result.ok,
                failure=result.failure.value if result.failure else None,
                correlation_id=correlation_id,
            )
        return result

    async def send_message(
        self,
        state: LedgerState,
        message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AdvisorResult:
        """
        Send one chat message about the current report.

        The reply (or the fallback text on failure) is appended to the
        history as the model's turn.

        Raises:
            AdvisorStateError: If no report is ready
            DuplicateSubmissionError: If a message is already being sent
        """
        if self._phase != AdvisorPhase.REPORT_READY:
            raise AdvisorStateError("Generate a report before chatting")
        if self._chat_phase == ChatPhase.SENDING:
            raise DuplicateSubmissionError("chat_message")

        correlation_id = correlation_id or create_correlation_id()
        prior = list(self._history)
        self._history.append(ChatTurn(role="user", content=message))
        self._chat_phase = ChatPhase.SENDING
        try:
            result = await self._client.chat(prior, state, message)
        finally:
            self._chat_phase = ChatPhase.IDLE

        self._history.append(ChatTurn(role="model", content=result.text))
        if not result.ok:
            await self._audit_failure(result, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_chat_message(
                turn=sum(1 for turn in self._history if turn.role == "user"),
                ok=result.ok,
                failure=result.failure.value if result.failure else None,
                correlation_id=correlation_id,
            )
        return result

    async def parse_transaction(
        self,
        text: str,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ParseResult:
        """Turn free text into a draft for the user to confirm. Never touches the ledger."""
        correlation_id = correlation_id or create_correlation_id()
        result = await self._client.parse_transaction(text, today)

        if result.failure and result.detail and self._audit_logger:
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=result.detail,
                correlation_id=correlation_id,
            )
        if self._audit_logger:
            await self._audit_logger.log_transaction_parsed(
                understood=result.understood,
                failure=result.failure.value if result.failure else None,
                correlation_id=correlation_id,
            )
        return result

    async def _audit_failure(self, result: AdvisorResult, correlation_id: UUID) -> None:
        if self._audit_logger and result.detail:
            await self._audit_logger.log_external_service_error(
                service="gemini",
                error_message=result.detail,
                correlation_id=correlation_id,
            )


def create_app_components(
    audit_storage: Optional[AuditStorageInterface] = None,
    state: Optional[LedgerState] = None,
) -> tuple[LedgerSession, AdvisorSession, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        audit_storage: Where the audit trail goes. Defaults to a fresh
                       in-memory store scoped to this session.
        state: Starting ledger. Defaults to the seed ledger.

    Returns:
        (ledger_session, advisor_session, audit_logger)
    """
    if audit_storage is None:
        audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)

    ledger_session = LedgerSession(
        state=state,
        audit_logger=audit_logger,
    )
    advisor_session = AdvisorSession(
        client=AdvisorClient(),
        audit_logger=audit_logger,
    )

    return ledger_session, advisor_session, audit_logger
