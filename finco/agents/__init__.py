"""AI agents package."""

from finco.agents.advisor import (
    AdvisorClient,
    AdvisorFailure,
    AdvisorResult,
    ChatTurn,
    GroundingSource,
    ParseResult,
)

__all__ = [
    "AdvisorClient",
    "AdvisorFailure",
    "AdvisorResult",
    "ChatTurn",
    "GroundingSource",
    "ParseResult",
]
