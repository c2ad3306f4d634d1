"""
In-Memory Audit Storage

Session-scoped: the trail lives as long as the process (or the Streamlit
session that owns it) and is gone on restart, like the ledger itself.
"""

from typing import Optional
from uuid import UUID

from finco.models.audit import AuditEvent
from finco.services.storage.interface import AuditStorageInterface, StorageError


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events, oldest first."""

    def __init__(self, max_events: Optional[int] = None):
        """
        Args:
            max_events: Refuse writes once this many events are stored.
                        None means unbounded.
        """
        self._events: list[AuditEvent] = []
        self._max_events = max_events

    def __len__(self) -> int:
        return len(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        if self._max_events is not None and len(self._events) >= self._max_events:
            raise StorageError(f"Audit store is full ({self._max_events} events)")
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        return [e for e in self._events if e.correlation_id == correlation_id]

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        return [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return list(reversed(self._events))[:limit]
