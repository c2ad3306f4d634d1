"""
FinCo Advisor Client

DESIGN DECISION: The advisor is a capability with Result-style returns.
Nothing raises past this boundary. Every call returns either text or a
typed failure reason together with a fixed user-facing fallback, and the
caller decides how to render it.

BOUNDARIES:

1. ANALYSIS:
   - CAN: Read a snapshot of goals, transactions, balance, income and bills
   - CANNOT: Change the ledger

2. CHAT:
   - CAN: Use Google Search grounding for general financial questions
   - MUST: Cite the sources it used

3. PARSE:
   - CAN: Turn free text into a TransactionDraft
   - MUST: Return "no result" when the output is outside the enumerations
   - CANNOT: Log the transaction itself (the user confirms first)

The LLM is a narrator and a translator. The numbers on the dashboard
always come from the AnalyticsEngine, never from the model.
"""

import asyncio
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Literal, Optional

import google.generativeai as genai
import structlog
from google.api_core import exceptions as google_exceptions
from pydantic import BaseModel, Field, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finco.agents import prompts
from finco.config import GeminiSettings, get_settings
from finco.models.ledger import (
    Category,
    LedgerState,
    TransactionDraft,
    TransactionType,
)


logger = structlog.get_logger(__name__)


ANALYSIS_FALLBACK = (
    "Sorry, I encountered an error while analyzing your finances. "
    "Please check your API key and try again."
)
ANALYSIS_EMPTY_FALLBACK = "I couldn't generate an analysis at this time. Please try again."
CHAT_FALLBACK = "I'm having trouble connecting right now. Please check your connection."
CHAT_EMPTY_FALLBACK = "I didn't catch that."
PARSE_HINT = "Could not understand that transaction. Try 'Paid 500 to Swiggy'"
PARSE_UNAVAILABLE = "The advisor is unreachable right now. Try again in a moment, or add the transaction by hand."

# Errors worth another attempt; anything else fails straight away.
TRANSIENT_ERRORS = (
    google_exceptions.ServiceUnavailable,
    google_exceptions.DeadlineExceeded,
    google_exceptions.ResourceExhausted,
    google_exceptions.InternalServerError,
)


# =============================================================================
# RESULT MODELS
# =============================================================================

class AdvisorFailure(str, Enum):
    """Why an advisor call produced no usable text."""
    MISSING_CREDENTIAL = "missing_credential"
    TIMEOUT = "timeout"
    SERVICE_ERROR = "service_error"
    EMPTY_RESPONSE = "empty_response"


class GroundingSource(BaseModel):
    title: str
    uri: str


class AdvisorResult(BaseModel):
    """
    Outcome of an analysis or chat call.

    On failure `text` holds the fallback message to show the user and
    `detail` the underlying error, for the audit trail only.
    """

    ok: bool
    text: str
    failure: Optional[AdvisorFailure] = None
    sources: list[GroundingSource] = Field(default_factory=list)
    detail: Optional[str] = None

    @classmethod
    def success(cls, text: str, sources: Optional[list[GroundingSource]] = None) -> "AdvisorResult":
        return cls(ok=True, text=text, sources=sources or [])

    @classmethod
    def failed(
        cls,
        failure: AdvisorFailure,
        fallback: str,
        detail: Optional[str] = None,
    ) -> "AdvisorResult":
        return cls(ok=False, text=fallback, failure=failure, detail=detail)


class ParseResult(BaseModel):
    """
    Outcome of parsing free text into a transaction.

    draft=None with failure=None means the text was not understood,
    which is a normal outcome and not an error.
    """

    draft: Optional[TransactionDraft] = None
    failure: Optional[AdvisorFailure] = None
    detail: Optional[str] = None

    @property
    def understood(self) -> bool:
        return self.draft is not None

    @property
    def message(self) -> Optional[str]:
        """
        Hint for the user when nothing usable came back.

        Text the model could not read and a service that could not be
        reached get different wording.
        """
        if self.understood:
            return None
        if self.failure in (AdvisorFailure.TIMEOUT, AdvisorFailure.SERVICE_ERROR):
            return PARSE_UNAVAILABLE
        return PARSE_HINT


class ChatTurn(BaseModel):
    role: Literal["user", "model"]
    content: str


# =============================================================================
# CLIENT
# =============================================================================

def _response_text(response) -> str:
    """Response text, or "" when the service returned no usable candidate."""
    try:
        return (response.text or "").strip()
    except ValueError:
        # Raised by the SDK when the candidate was blocked or has no parts
        return ""


def _grounding_sources(response) -> list[GroundingSource]:
    """Web sources the model cited, if it used search grounding."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return []
    metadata = getattr(candidates[0], "grounding_metadata", None)
    chunks = getattr(metadata, "grounding_chunks", None) or []

    sources = []
    for chunk in chunks:
        web = getattr(chunk, "web", None)
        uri = getattr(web, "uri", None) if web else None
        if uri:
            sources.append(GroundingSource(title=getattr(web, "title", None) or uri, uri=uri))
    return sources


def with_sources(text: str, sources: list[GroundingSource]) -> str:
    """Append a Markdown "Sources" list to a chat answer."""
    if not sources:
        return text
    links = "\n".join(f"* [{s.title}]({s.uri})" for s in sources)
    return f"{text}\n\n**Sources:**\n{links}"


def _extract_json(text: str) -> Optional[dict]:
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def draft_from_json(data: dict) -> Optional[TransactionDraft]:
    """
    Build a TransactionDraft from parsed model output.

    All five fields must be present and inside their enumerations;
    anything else means the text was not understood.
    """
    required = ("merchant", "amount", "category", "type", "method")
    if not data or any(data.get(key) in (None, "") for key in required):
        return None
    if not all(isinstance(data[key], str) for key in ("category", "type", "method")):
        return None

    if data["category"] not in {c.value for c in Category}:
        return None
    if data["type"] not in {t.value for t in TransactionType}:
        return None
    if data["method"] not in {m.value for m in prompts.PARSEABLE_METHODS}:
        return None

    try:
        amount = Decimal(str(data["amount"]))
    except InvalidOperation:
        return None
    if not amount.is_finite() or amount < 0:
        return None

    try:
        return TransactionDraft(
            merchant=str(data["merchant"]),
            amount=amount,
            category=data["category"],
            type=data["type"],
            method=data["method"],
        )
    except ValidationError:
        return None


class AdvisorClient:
    """
    Boundary to the Gemini text-generation service.

    RESPONSIBILITIES:
    - Produce the narrative analysis report
    - Answer chat turns, with web citations when grounded
    - Parse dictated or typed transactions into drafts

    A missing API key is not an error at construction time: every call
    then returns a `missing_credential` failure and the dashboard keeps
    working.
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        currency_symbol: Optional[str] = None,
    ):
        if settings is None:
            try:
                settings = get_settings().gemini
            except ValidationError as e:
                logger.warning("advisor_not_configured", error=str(e))
                settings = None
        self._settings = settings
        self._currency = currency_symbol or get_settings().app.currency_symbol
        if self._settings is not None:
            self._configure_genai()

    @property
    def is_configured(self) -> bool:
        return self._settings is not None

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)

    def _advisor_model(self, extra_instruction: str = "", grounded: bool = False):
        instruction = prompts.system_instruction(self._currency)
        if extra_instruction:
            instruction = f"{instruction}\n{extra_instruction}"
        kwargs = {}
        if grounded and self._settings.enable_search_grounding:
            kwargs["tools"] = "google_search_retrieval"
        return genai.GenerativeModel(
            model_name=self._settings.model_name,
            system_instruction=instruction,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            },
            **kwargs,
        )

    def _parse_model(self):
        return genai.GenerativeModel(
            model_name=self._settings.parse_model_name,
            generation_config={
                "temperature": 0.0,
                "max_output_tokens": 512,
                "response_mime_type": "application/json",
            },
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    async def _generate(self, model, prompt: str):
        return await model.generate_content_async(prompt)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    async def _send(self, session, message: str):
        return await session.send_message_async(message)

    async def _bounded(self, call):
        """Await `call` under the configured request timeout."""
        return await asyncio.wait_for(call, timeout=self._settings.request_timeout_seconds)

    async def request_analysis(self, state: LedgerState) -> AdvisorResult:
        """
        Generate the narrative financial report for the current ledger.

        Returns:
            AdvisorResult with Markdown text, or a typed failure
        """
        if not self.is_configured:
            return AdvisorResult.failed(AdvisorFailure.MISSING_CREDENTIAL, ANALYSIS_FALLBACK)

        prompt = prompts.analysis_prompt(state, self._currency)
        try:
            model = self._advisor_model()
            response = await self._bounded(self._generate(model, prompt))
        except asyncio.TimeoutError:
            logger.warning("advisor_timeout", call="analysis")
            return AdvisorResult.failed(
                AdvisorFailure.TIMEOUT, ANALYSIS_FALLBACK, "analysis request timed out"
            )
        except Exception as e:
            logger.error("advisor_error", call="analysis", error=str(e))
            return AdvisorResult.failed(AdvisorFailure.SERVICE_ERROR, ANALYSIS_FALLBACK, str(e))

        text = _response_text(response)
        if not text:
            return AdvisorResult.failed(AdvisorFailure.EMPTY_RESPONSE, ANALYSIS_EMPTY_FALLBACK)
        return AdvisorResult.success(text)

    async def chat(
        self,
        history: list[ChatTurn],
        state: LedgerState,
        message: str,
    ) -> AdvisorResult:
        """
        Answer one chat turn.

        Args:
            history: Earlier turns, oldest first (the report is usually the first model turn)
            state: Current ledger, for the live balance and next bill
            message: The user's new message

        Returns:
            AdvisorResult whose text carries a Sources list when the answer was grounded
        """
        if not self.is_configured:
            return AdvisorResult.failed(AdvisorFailure.MISSING_CREDENTIAL, CHAT_FALLBACK)

        try:
            model = self._advisor_model(
                extra_instruction=prompts.chat_context(state, self._currency),
                grounded=True,
            )
            session = model.start_chat(history=[
                {"role": turn.role, "parts": [turn.content]} for turn in history
            ])
            response = await self._bounded(self._send(session, message))
        except asyncio.TimeoutError:
            logger.warning("advisor_timeout", call="chat")
            return AdvisorResult.failed(AdvisorFailure.TIMEOUT, CHAT_FALLBACK, "chat request timed out")
        except Exception as e:
            logger.error("advisor_error", call="chat", error=str(e))
            return AdvisorResult.failed(AdvisorFailure.SERVICE_ERROR, CHAT_FALLBACK, str(e))

        text = _response_text(response)
        if not text:
            return AdvisorResult.failed(AdvisorFailure.EMPTY_RESPONSE, CHAT_EMPTY_FALLBACK)

        sources = _grounding_sources(response)
        return AdvisorResult.success(with_sources(text, sources), sources)

    async def parse_transaction(
        self,
        text: str,
        today: Optional[date] = None,
    ) -> ParseResult:
        """
        Parse a free-text description ("Paid 500 to Swiggy") into a draft.

        Unparseable or out-of-enumeration output is "no result", not a failure.
        """
        if not self.is_configured:
            return ParseResult(failure=AdvisorFailure.MISSING_CREDENTIAL)
        if not text.strip():
            return ParseResult()

        prompt = prompts.parse_prompt(text, today or date.today())
        try:
            model = self._parse_model()
            response = await self._bounded(self._generate(model, prompt))
        except asyncio.TimeoutError:
            logger.warning("advisor_timeout", call="parse")
            return ParseResult(failure=AdvisorFailure.TIMEOUT, detail="parse request timed out")
        except Exception as e:
            logger.error("advisor_error", call="parse", error=str(e))
            return ParseResult(failure=AdvisorFailure.SERVICE_ERROR, detail=str(e))

        raw = _response_text(response)
        if not raw:
            return ParseResult()

        draft = draft_from_json(_extract_json(raw) or {})
        if draft is None:
            logger.info("transaction_not_understood", text=text)
        return ParseResult(draft=draft)
