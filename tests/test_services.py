"""
Tests for audit storage, the audit logger, CSV export and settings.
"""

import csv
import io
from uuid import uuid4

import pytest
from pydantic import ValidationError

from conftest import make_state, make_tx
from finco.audit import AuditLogger
from finco.config import AppSettings, GeminiSettings, get_settings, validate_all_settings
from finco.models import AuditEventBuilder, AuditEventType
from finco.services.export import CSV_COLUMNS, transactions_to_csv, write_transactions_csv
from finco.services.storage import AuditStorageInterface, InMemoryAuditStorage, StorageError


def applied_event(correlation_id=None, entity_id="g1"):
    return AuditEventBuilder.ledger_event_applied(
        kind="stake_to_goal",
        entity_id=entity_id,
        balance_before="24500",
        balance_after="24400",
        tokens_awarded=1,
        correlation_id=correlation_id or uuid4(),
    )


class FailingStorage(AuditStorageInterface):
    """Storage whose writes always fail."""

    async def append_event(self, event):
        raise StorageError("disk full")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestInMemoryAuditStorage:
    """Tests for the session audit store."""

    @pytest.mark.asyncio
    async def test_append_and_query(self):
        storage = InMemoryAuditStorage()
        correlation_id = uuid4()
        await storage.append_event(applied_event(correlation_id, "g1"))
        await storage.append_event(applied_event(uuid4(), "g2"))

        assert len(storage) == 2
        by_correlation = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.entity_id for e in by_correlation] == ["g1"]
        by_entity = await storage.get_events_by_entity("goal", "g2")
        assert len(by_entity) == 1

    @pytest.mark.asyncio
    async def test_recent_events_newest_first(self):
        storage = InMemoryAuditStorage()
        for entity_id in ("a", "b", "c"):
            await storage.append_event(applied_event(entity_id=entity_id))

        recent = await storage.get_recent_events(limit=2)
        assert [e.entity_id for e in recent] == ["c", "b"]

    @pytest.mark.asyncio
    async def test_full_store_refuses_writes(self):
        storage = InMemoryAuditStorage(max_events=1)
        await storage.append_event(applied_event())
        with pytest.raises(StorageError):
            await storage.append_event(applied_event())


class TestAuditLogger:
    """Tests for AuditLogger."""

    @pytest.mark.asyncio
    async def test_log_without_storage(self):
        logger = AuditLogger()
        assert logger.storage is None
        assert await logger.log(applied_event()) is True

    @pytest.mark.asyncio
    async def test_empty_store_receives_first_event(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        assert await logger.log(applied_event()) is True
        assert len(storage) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_raised(self):
        """A failing audit store never breaks the action being audited."""
        logger = AuditLogger(FailingStorage())
        assert await logger.log(applied_event()) is False

    @pytest.mark.asyncio
    async def test_helpers_write_to_storage(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = uuid4()

        await logger.log_duplicate_submission(kind="p2p_transfer", correlation_id=correlation_id)
        await logger.log_error(
            error_type="unexpected",
            error_message="boom",
            correlation_id=correlation_id,
        )

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.DUPLICATE_SUBMISSION,
            AuditEventType.SYSTEM_ERROR,
        ]


class TestCsvExport:
    """Tests for the transaction CSV."""

    def test_seed_export(self, seed_state):
        rows = list(csv.reader(io.StringIO(transactions_to_csv(seed_state))))

        assert rows[0] == CSV_COLUMNS
        assert len(rows) == 15
        assert rows[1] == ["2023-10-25", "Swiggy", "Food", "450", "debit", "UPI", "0x71c...9a21"]

    def test_missing_hash_is_blank(self):
        tx = make_tx("1", "99.50", merchant="Chai, Point")
        rows = list(csv.reader(io.StringIO(transactions_to_csv(make_state([tx])))))
        assert rows[1] == ["2023-10-25", "Chai, Point", "Food", "99.50", "debit", "UPI", ""]

    def test_write_returns_row_count(self, seed_state):
        buffer = io.StringIO()
        assert write_transactions_csv(seed_state.transactions[:3], buffer) == 3

    def test_empty_ledger_has_header_only(self):
        text = transactions_to_csv(make_state())
        assert text.splitlines() == [",".join(CSV_COLUMNS)]


class TestSettings:
    """Tests for configuration loading."""

    def test_api_key_required(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ValidationError):
            GeminiSettings(_env_file=None)

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "k")
        monkeypatch.setenv("GEMINI_MODEL_NAME", "gemini-2.0-flash")
        monkeypatch.setenv("GEMINI_REQUEST_TIMEOUT_SECONDS", "12.5")

        settings = GeminiSettings(_env_file=None)

        assert settings.model_name == "gemini-2.0-flash"
        assert settings.request_timeout_seconds == 12.5
        assert settings.enable_search_grounding is True

    def test_app_defaults(self, monkeypatch):
        monkeypatch.delenv("SIMULATED_NETWORK_DELAY_SECONDS", raising=False)
        monkeypatch.delenv("CURRENCY_SYMBOL", raising=False)
        app = AppSettings(_env_file=None)
        assert app.simulated_network_delay_seconds == 1.5
        assert app.currency_symbol == "₹"

    def test_network_delay_bounded(self):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, simulated_network_delay_seconds=-1)

    def test_validate_all_settings_reports_missing_key(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        get_settings.cache_clear()

        results = validate_all_settings()

        assert results["gemini"] is False
        assert "api_key" in results["gemini_error"]
        assert results["app"] is True

    def test_validate_all_settings_ok(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("GEMINI_API_KEY", "k")

        assert validate_all_settings() == {"gemini": True, "app": True}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
