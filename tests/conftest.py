"""
Shared fixtures.

No test talks to Gemini: the SDK module used by the advisor is replaced
with FakeGenAI, which replays scripted responses and records calls.
"""

import asyncio
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest

from finco.agents import advisor as advisor_module
from finco.config import GeminiSettings
from finco.ledger import initial_ledger
from finco.models.ledger import (
    Bill,
    Category,
    LedgerState,
    PaymentMethod,
    Transaction,
    TransactionType,
)
from finco.validation import LedgerValidator


SEED_DAY = date(2023, 10, 25)


def make_tx(
    tx_id: str,
    amount,
    merchant: str = "Swiggy",
    category: Category = Category.FOOD,
    tx_type: TransactionType = TransactionType.DEBIT,
    day: date = SEED_DAY,
) -> Transaction:
    return Transaction(
        id=tx_id,
        date=day,
        merchant=merchant,
        amount=Decimal(str(amount)),
        category=category,
        type=tx_type,
        method=PaymentMethod.UPI,
    )


def make_state(
    transactions=(),
    bills=(),
    monthly_income="85000",
    current_balance="24500",
    **changes,
) -> LedgerState:
    """A small reconciled ledger: opening_balance is derived from the transactions."""
    transactions = tuple(transactions)
    balance = Decimal(str(current_balance))
    net = sum((t.signed_amount for t in transactions), Decimal("0"))
    return LedgerState(
        monthly_income=Decimal(str(monthly_income)),
        current_balance=balance,
        opening_balance=balance - net,
        transactions=transactions,
        bills=tuple(bills),
        **changes,
    )


def make_bill(bill_id: str, amount, due: date, is_paid: bool = False) -> Bill:
    return Bill(id=bill_id, name=f"Bill {bill_id}", amount=Decimal(str(amount)), due_date=due, is_paid=is_paid)


@pytest.fixture
def seed_state() -> LedgerState:
    return initial_ledger()


@pytest.fixture
def validator() -> LedgerValidator:
    return LedgerValidator(currency_symbol="₹")


# =============================================================================
# GEMINI FAKE
# =============================================================================

class Hang:
    """Scripted response that never arrives within a test timeout."""

    def __init__(self, seconds: float = 5.0):
        self.seconds = seconds


class FakeResponse:
    def __init__(self, text: str = "", sources=(), blocked: bool = False):
        self._text = text
        self._blocked = blocked
        chunks = [
            SimpleNamespace(web=SimpleNamespace(title=title, uri=uri))
            for title, uri in sources
        ]
        self.candidates = [
            SimpleNamespace(grounding_metadata=SimpleNamespace(grounding_chunks=chunks))
        ]

    @property
    def text(self) -> str:
        if self._blocked:
            raise ValueError("response has no parts")
        return self._text


class FakeChatSession:
    def __init__(self, genai, history):
        self._genai = genai
        self.history = history

    async def send_message_async(self, message):
        self._genai.messages.append(message)
        return await self._genai.next_response()


class FakeModel:
    def __init__(self, genai, **kwargs):
        self._genai = genai
        self.kwargs = kwargs

    async def generate_content_async(self, prompt):
        self._genai.prompts.append(prompt)
        return await self._genai.next_response()

    def start_chat(self, history):
        self._genai.histories.append(history)
        return FakeChatSession(self._genai, history)


class FakeGenAI:
    """Stands in for the google.generativeai module."""

    def __init__(self):
        self.api_key = None
        self.responses = []
        self.models = []
        self.prompts = []
        self.messages = []
        self.histories = []
        self.calls = 0

    def configure(self, api_key):
        self.api_key = api_key

    def GenerativeModel(self, **kwargs):
        model = FakeModel(self, **kwargs)
        self.models.append(model)
        return model

    def script(self, *responses):
        self.responses = list(responses)

    async def next_response(self):
        self.calls += 1
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, Hang):
            await asyncio.sleep(item.seconds)
        if isinstance(item, str):
            return FakeResponse(item)
        return item


@pytest.fixture
def fake_genai(monkeypatch) -> FakeGenAI:
    fake = FakeGenAI()
    monkeypatch.setattr(advisor_module, "genai", fake)
    return fake


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(
        _env_file=None,
        api_key="test-key",
        request_timeout_seconds=2.0,
        enable_search_grounding=True,
    )
