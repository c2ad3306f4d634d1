"""
Tests for the AdvisorClient.

The Gemini SDK is replaced by FakeGenAI (see conftest), so these tests
exercise prompt construction, retries, timeouts and result mapping
without any network access.
"""

from decimal import Decimal

import pytest
from google.api_core import exceptions as google_exceptions
from tenacity import wait_none

from conftest import SEED_DAY, FakeResponse, Hang
from finco.agents import AdvisorClient, AdvisorFailure, ChatTurn, ParseResult
from finco.agents.advisor import (
    ANALYSIS_EMPTY_FALLBACK,
    ANALYSIS_FALLBACK,
    CHAT_EMPTY_FALLBACK,
    CHAT_FALLBACK,
    PARSE_HINT,
    PARSE_UNAVAILABLE,
)
from finco.config import GeminiSettings
from finco.models import Category, PaymentMethod, TransactionType


PARSED_SWIGGY = (
    '{"merchant": "Swiggy", "amount": 500, "category": "Food", '
    '"type": "debit", "method": "UPI"}'
)


@pytest.fixture
def client(fake_genai, gemini_settings) -> AdvisorClient:
    return AdvisorClient(settings=gemini_settings, currency_symbol="₹")


@pytest.fixture
def no_retry_wait(monkeypatch):
    """Retry immediately instead of backing off."""
    monkeypatch.setattr(AdvisorClient._generate.retry, "wait", wait_none())
    monkeypatch.setattr(AdvisorClient._send.retry, "wait", wait_none())


class TestMissingCredential:
    """Without an API key the advisor degrades instead of failing."""

    @pytest.fixture
    def unconfigured(self, fake_genai, monkeypatch, tmp_path) -> AdvisorClient:
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        return AdvisorClient(currency_symbol="₹")

    def test_not_configured(self, unconfigured, fake_genai):
        assert unconfigured.is_configured is False
        assert fake_genai.api_key is None

    @pytest.mark.asyncio
    async def test_analysis_returns_fallback(self, unconfigured, fake_genai, seed_state):
        result = await unconfigured.request_analysis(seed_state)
        assert result.ok is False
        assert result.failure == AdvisorFailure.MISSING_CREDENTIAL
        assert result.text == ANALYSIS_FALLBACK
        assert fake_genai.calls == 0

    @pytest.mark.asyncio
    async def test_chat_and_parse_degrade(self, unconfigured, seed_state):
        chat = await unconfigured.chat([], seed_state, "hello")
        parsed = await unconfigured.parse_transaction("Paid 500 to Swiggy")
        assert chat.text == CHAT_FALLBACK
        assert parsed.failure == AdvisorFailure.MISSING_CREDENTIAL
        assert parsed.draft is None


class TestAnalysis:
    """Tests for the narrative report."""

    @pytest.mark.asyncio
    async def test_success(self, client, fake_genai, seed_state):
        fake_genai.script("## 🚨 Cashflow Forecast\nTight.")
        result = await client.request_analysis(seed_state)

        assert result.ok is True
        assert result.text.startswith("## 🚨 Cashflow Forecast")
        assert result.failure is None
        assert fake_genai.api_key == "test-key"

    @pytest.mark.asyncio
    async def test_prompt_carries_ledger_snapshot(self, client, fake_genai, seed_state):
        fake_genai.script("report")
        await client.request_analysis(seed_state)

        prompt = fake_genai.prompts[0]
        assert "CURRENT_BALANCE: ₹24500" in prompt
        assert "MONTHLY_INCOME: ₹85000" in prompt
        assert "'Bali Trip' or 'Emergency Fund'" in prompt
        assert "Credit Card Bill" in prompt
        assert "vault_balance" not in prompt

    @pytest.mark.asyncio
    async def test_model_configuration(self, client, fake_genai, seed_state):
        fake_genai.script("report")
        await client.request_analysis(seed_state)

        kwargs = fake_genai.models[0].kwargs
        assert kwargs["model_name"] == "gemini-1.5-pro"
        assert "## 🎯 Goal Acceleration" in kwargs["system_instruction"]
        assert "tools" not in kwargs

    @pytest.mark.asyncio
    async def test_empty_response(self, client, fake_genai, seed_state):
        fake_genai.script("   ")
        result = await client.request_analysis(seed_state)
        assert result.failure == AdvisorFailure.EMPTY_RESPONSE
        assert result.text == ANALYSIS_EMPTY_FALLBACK

    @pytest.mark.asyncio
    async def test_blocked_response_is_empty(self, client, fake_genai, seed_state):
        fake_genai.script(FakeResponse(blocked=True))
        result = await client.request_analysis(seed_state)
        assert result.failure == AdvisorFailure.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_permanent_error_not_retried(self, client, fake_genai, seed_state):
        fake_genai.script(google_exceptions.PermissionDenied("API key not valid"))
        result = await client.request_analysis(seed_state)

        assert result.failure == AdvisorFailure.SERVICE_ERROR
        assert result.text == ANALYSIS_FALLBACK
        assert "API key not valid" in result.detail
        assert fake_genai.calls == 1

    @pytest.mark.asyncio
    async def test_transient_error_retried_then_gives_up(
        self, client, fake_genai, seed_state, no_retry_wait
    ):
        fake_genai.script(google_exceptions.ServiceUnavailable("overloaded"))
        result = await client.request_analysis(seed_state)

        assert result.failure == AdvisorFailure.SERVICE_ERROR
        assert fake_genai.calls == 3

    @pytest.mark.asyncio
    async def test_transient_error_recovers(self, client, fake_genai, seed_state, no_retry_wait):
        fake_genai.script(google_exceptions.ServiceUnavailable("overloaded"), "report")
        result = await client.request_analysis(seed_state)

        assert result.ok is True
        assert fake_genai.calls == 2

    @pytest.mark.asyncio
    async def test_timeout(self, fake_genai, seed_state):
        settings = GeminiSettings(_env_file=None, api_key="test-key", request_timeout_seconds=0.05)
        client = AdvisorClient(settings=settings, currency_symbol="₹")
        fake_genai.script(Hang(5))

        result = await client.request_analysis(seed_state)

        assert result.failure == AdvisorFailure.TIMEOUT
        assert result.text == ANALYSIS_FALLBACK


class TestChat:
    """Tests for chat turns."""

    @pytest.mark.asyncio
    async def test_history_and_message_forwarded(self, client, fake_genai, seed_state):
        fake_genai.script("Cut Swiggy.")
        history = [ChatTurn(role="model", content="## Report")]

        result = await client.chat(history, seed_state, "How do I save more?")

        assert result.ok is True
        assert result.text == "Cut Swiggy."
        assert fake_genai.histories[0] == [{"role": "model", "parts": ["## Report"]}]
        assert fake_genai.messages == ["How do I save more?"]

    @pytest.mark.asyncio
    async def test_live_context_in_instruction(self, client, fake_genai, seed_state):
        fake_genai.script("ok")
        await client.chat([], seed_state, "hi")

        instruction = fake_genai.models[0].kwargs["system_instruction"]
        assert "Balance: ₹24500" in instruction
        # Rent is the soonest unpaid bill in the seed
        assert "Next Bill: Rent" in instruction

    @pytest.mark.asyncio
    async def test_grounded_answer_lists_sources(self, client, fake_genai, seed_state):
        fake_genai.script(FakeResponse(
            "The repo rate is 6.5%.",
            sources=[("RBI", "https://rbi.org.in"), ("Mint", "https://livemint.com")],
        ))
        result = await client.chat([], seed_state, "What is the repo rate?")

        assert fake_genai.models[0].kwargs["tools"] == "google_search_retrieval"
        assert [s.title for s in result.sources] == ["RBI", "Mint"]
        assert result.text == (
            "The repo rate is 6.5%.\n\n**Sources:**\n"
            "* [RBI](https://rbi.org.in)\n"
            "* [Mint](https://livemint.com)"
        )

    @pytest.mark.asyncio
    async def test_grounding_can_be_disabled(self, fake_genai, seed_state):
        settings = GeminiSettings(_env_file=None, api_key="test-key", enable_search_grounding=False)
        client = AdvisorClient(settings=settings, currency_symbol="₹")
        fake_genai.script("ok")

        await client.chat([], seed_state, "hi")

        assert "tools" not in fake_genai.models[0].kwargs

    @pytest.mark.asyncio
    async def test_chat_failure_and_empty(self, client, fake_genai, seed_state):
        fake_genai.script(google_exceptions.PermissionDenied("nope"))
        failed = await client.chat([], seed_state, "hi")
        fake_genai.script("")
        empty = await client.chat([], seed_state, "hi")

        assert failed.text == CHAT_FALLBACK
        assert failed.failure == AdvisorFailure.SERVICE_ERROR
        assert empty.text == CHAT_EMPTY_FALLBACK

    @pytest.mark.asyncio
    async def test_chat_retries_transient_errors(self, client, fake_genai, seed_state, no_retry_wait):
        fake_genai.script(google_exceptions.DeadlineExceeded("slow"), "ok")
        result = await client.chat([], seed_state, "hi")
        assert result.ok is True
        assert fake_genai.calls == 2


class TestParseTransaction:
    """Tests for natural-language transaction parsing."""

    @pytest.mark.asyncio
    async def test_valid_parse(self, client, fake_genai):
        fake_genai.script(PARSED_SWIGGY)
        result = await client.parse_transaction("Paid 500 to Swiggy", today=SEED_DAY)

        assert result.understood is True
        assert result.message is None
        draft = result.draft
        assert draft.merchant == "Swiggy"
        assert draft.amount == Decimal("500")
        assert draft.category == Category.FOOD
        assert draft.type == TransactionType.DEBIT
        assert draft.method == PaymentMethod.UPI

    @pytest.mark.asyncio
    async def test_prompt_and_model(self, client, fake_genai):
        fake_genai.script(PARSED_SWIGGY)
        await client.parse_transaction("Paid 500 to Swiggy", today=SEED_DAY)

        prompt = fake_genai.prompts[0]
        assert "Current Year is 2023" in prompt
        assert '"Paid 500 to Swiggy"' in prompt
        assert "Crypto" not in prompt
        kwargs = fake_genai.models[0].kwargs
        assert kwargs["model_name"] == "gemini-1.5-flash"
        assert kwargs["generation_config"]["response_mime_type"] == "application/json"

    @pytest.mark.asyncio
    async def test_fenced_json_accepted(self, client, fake_genai):
        fake_genai.script(f"```json\n{PARSED_SWIGGY}\n```")
        result = await client.parse_transaction("Paid 500 to Swiggy")
        assert result.understood is True

    @pytest.mark.parametrize("output", [
        '{"merchant": "Indigo", "amount": 5000, "category": "Travel", "type": "debit", "method": "UPI"}',
        '{"merchant": "Binance", "amount": 5000, "category": "Other", "type": "debit", "method": "Crypto"}',
        '{"merchant": "Swiggy", "amount": -5, "category": "Food", "type": "debit", "method": "UPI"}',
        '{"merchant": "Swiggy", "amount": "lots", "category": "Food", "type": "debit", "method": "UPI"}',
        '{"merchant": "Swiggy", "category": "Food", "type": "debit", "method": "UPI"}',
        '{"merchant": "Swiggy", "amount": 5, "category": ["Food"], "type": "debit", "method": "UPI"}',
        "{}",
        "I'm not sure what you mean.",
    ])
    @pytest.mark.asyncio
    async def test_unusable_output_is_not_understood(self, client, fake_genai, output):
        """Anything outside the enumerations is 'no result', not an error."""
        fake_genai.script(output)
        result = await client.parse_transaction("something odd")

        assert result.draft is None
        assert result.failure is None
        assert result.message == PARSE_HINT

    @pytest.mark.asyncio
    async def test_blank_text_skips_the_call(self, client, fake_genai):
        result = await client.parse_transaction("   ")
        assert result.draft is None
        assert fake_genai.calls == 0

    @pytest.mark.asyncio
    async def test_service_failure(self, client, fake_genai):
        fake_genai.script(google_exceptions.PermissionDenied("quota"))
        result = await client.parse_transaction("Paid 500 to Swiggy")
        assert result.failure == AdvisorFailure.SERVICE_ERROR
        assert "quota" in result.detail
        assert result.message == PARSE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_timeout_reads_as_unreachable(self, fake_genai):
        settings = GeminiSettings(_env_file=None, api_key="test-key", request_timeout_seconds=0.05)
        client = AdvisorClient(settings=settings, currency_symbol="₹")
        fake_genai.script(Hang(5))

        result = await client.parse_transaction("Paid 500 to Swiggy")

        assert result.failure == AdvisorFailure.TIMEOUT
        assert result.message == PARSE_UNAVAILABLE

    def test_unreachable_wording_differs_from_not_understood(self):
        not_understood = ParseResult()
        unreachable = ParseResult(failure=AdvisorFailure.SERVICE_ERROR)
        assert not_understood.message != unreachable.message
        assert "understand" not in unreachable.message


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
