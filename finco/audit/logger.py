"""
Audit Logger

DESIGN DECISION: Every ledger action and advisor call is logged.
This provides:
1. A session history the user can inspect
2. Debugging capability when the advisor misbehaves
3. A way to explain how the balance got where it is

The audit logger:
- Is async so it fits the session's async flows
- Gracefully handles failures (a storage error never undoes a ledger change)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finco.models.audit import AuditEvent, AuditEventBuilder
from finco.models.ledger import ValidationIssue
from finco.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store (for the in-app history view)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for the audit trail.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    @property
    def storage(self) -> Optional[AuditStorageInterface]:
        return self._storage

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Appends to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage is not None:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_ledger_event_applied(
        self,
        kind: str,
        entity_id: Optional[str],
        balance_before: str,
        balance_after: str,
        tokens_awarded: int,
        correlation_id: UUID,
    ) -> None:
        """Log a reducer that changed the ledger."""
        event = AuditEventBuilder.ledger_event_applied(
            kind=kind,
            entity_id=entity_id,
            balance_before=balance_before,
            balance_after=balance_after,
            tokens_awarded=tokens_awarded,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_ledger_event_ignored(
        self,
        kind: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log an event that left the ledger unchanged."""
        event = AuditEventBuilder.ledger_event_ignored(
            kind=kind,
            reason=reason,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        kind: str,
        issues: list[ValidationIssue],
        correlation_id: UUID,
    ) -> None:
        """Log validation failure."""
        event = AuditEventBuilder.validation_failed(
            kind=kind,
            issues=[issue.model_dump() for issue in issues],
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_duplicate_submission(
        self,
        kind: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.duplicate_submission(
            kind=kind,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_requested(
        self,
        request_number: int,
        transaction_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analysis_requested(
            request_number=request_number,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_completed(
        self,
        request_number: int,
        ok: bool,
        failure: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analysis_completed(
            request_number=request_number,
            ok=ok,
            failure=failure,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_analysis_discarded(
        self,
        request_number: int,
        latest_request: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.analysis_discarded(
            request_number=request_number,
            latest_request=latest_request,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_chat_message(
        self,
        turn: int,
        ok: bool,
        failure: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.chat_message_sent(
            turn=turn,
            ok=ok,
            failure=failure,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_parsed(
        self,
        understood: bool,
        failure: Optional[str],
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.transaction_parsed(
            understood=understood,
            failure=failure,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a stake).
    Pass it through all subsequent operations.
    """
    return uuid4()
