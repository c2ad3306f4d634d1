"""
Audit Models for FinCo

Every ledger action and every advisor call is logged for audit purposes.
This provides:
1. A session history the user can inspect
2. Debugging information when the advisor misbehaves
3. The ability to reconstruct how the balance got where it is

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_DELETED = "transaction_deleted"
    BILL_PAID = "bill_paid"
    GOAL_ADDED = "goal_added"
    GOAL_STAKED = "goal_staked"
    INCOME_UPDATED = "income_updated"
    BUDGET_UPDATED = "budget_updated"
    P2P_TRANSFER_SENT = "p2p_transfer_sent"
    VAULT_TRANSFER = "vault_transfer"
    WALLET_CONNECTED = "wallet_connected"
    WALLET_DISCONNECTED = "wallet_disconnected"
    EVENT_IGNORED = "event_ignored"

    # Boundary checks
    VALIDATION_FAILED = "validation_failed"
    DUPLICATE_SUBMISSION = "duplicate_submission"

    # Advisor
    ANALYSIS_REQUESTED = "analysis_requested"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_DISCARDED = "analysis_discarded"
    CHAT_MESSAGE_SENT = "chat_message_sent"
    TRANSACTION_PARSED = "transaction_parsed"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'bill', 'goal')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - one id per user action
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., validation and apply of one action)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


_LEDGER_EVENT_TYPES = {
    "add_transaction": (AuditEventType.TRANSACTION_ADDED, "transaction"),
    "delete_transaction": (AuditEventType.TRANSACTION_DELETED, "transaction"),
    "mark_bill_paid": (AuditEventType.BILL_PAID, "bill"),
    "add_goal": (AuditEventType.GOAL_ADDED, "goal"),
    "stake_to_goal": (AuditEventType.GOAL_STAKED, "goal"),
    "update_income": (AuditEventType.INCOME_UPDATED, "ledger"),
    "update_budget": (AuditEventType.BUDGET_UPDATED, "budget"),
    "p2p_transfer": (AuditEventType.P2P_TRANSFER_SENT, "transaction"),
    "vault_transfer": (AuditEventType.VAULT_TRANSFER, "vault"),
    "connect_wallet": (AuditEventType.WALLET_CONNECTED, "wallet"),
    "disconnect_wallet": (AuditEventType.WALLET_DISCONNECTED, "wallet"),
}


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.ledger_event_applied("add_transaction", ...)
        event = AuditEventBuilder.validation_failed("stake_to_goal", issues, correlation_id)
    """

    @staticmethod
    def ledger_event_applied(
        kind: str,
        entity_id: Optional[str],
        balance_before: str,
        balance_after: str,
        tokens_awarded: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        event_type, entity_type = _LEDGER_EVENT_TYPES[kind]
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Ledger updated: {kind.replace('_', ' ')}",
            details={
                "balance_before": balance_before,
                "balance_after": balance_after,
                "tokens_awarded": tokens_awarded,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_event_ignored(
        kind: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_IGNORED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"No change: {kind.replace('_', ' ')} ({reason})",
            details={"kind": kind, "reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        kind: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Rejected {kind.replace('_', ' ')} with {len(issues)} issues",
            details={
                "kind": kind,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def duplicate_submission(
        kind: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_SUBMISSION,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Refused duplicate {kind.replace('_', ' ')} while one is pending",
            details={"kind": kind},
            is_user_action=True,
        )

    @staticmethod
    def analysis_requested(
        request_number: int,
        transaction_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_REQUESTED,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Analysis #{request_number} requested",
            details={
                "request_number": request_number,
                "transaction_count": transaction_count,
            },
            is_user_action=True,
        )

    @staticmethod
    def analysis_completed(
        request_number: int,
        ok: bool,
        failure: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            severity=AuditSeverity.INFO if ok else AuditSeverity.WARNING,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Analysis #{request_number} {'ready' if ok else 'failed'}",
            details={
                "request_number": request_number,
                "failure": failure,
            },
        )

    @staticmethod
    def analysis_discarded(
        request_number: int,
        latest_request: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type="analysis",
            correlation_id=correlation_id,
            description=f"Stale analysis #{request_number} discarded",
            details={
                "request_number": request_number,
                "latest_request": latest_request,
            },
        )

    @staticmethod
    def chat_message_sent(
        turn: int,
        ok: bool,
        failure: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAT_MESSAGE_SENT,
            severity=AuditSeverity.INFO if ok else AuditSeverity.WARNING,
            entity_type="chat",
            correlation_id=correlation_id,
            description=f"Chat turn {turn} {'answered' if ok else 'failed'}",
            details={"turn": turn, "failure": failure},
            is_user_action=True,
        )

    @staticmethod
    def transaction_parsed(
        understood: bool,
        failure: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_PARSED,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=(
                "Transaction text understood" if understood
                else "Transaction text not understood"
            ),
            details={"understood": understood, "failure": failure},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
