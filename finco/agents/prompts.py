"""
Prompt text for the FinCo advisor.

Prompts are plain functions of the ledger so they can be inspected in
tests without touching the network.
"""

import json
from datetime import date
from typing import Optional

from finco.models.ledger import Category, LedgerState, PaymentMethod, TransactionType


# Methods the parser may return. Crypto is only ever produced by the
# contract-style operations, never typed by the user.
PARSEABLE_METHODS = [PaymentMethod.UPI, PaymentMethod.CARD, PaymentMethod.BANK_TRANSFER]


def system_instruction(currency_symbol: str = "₹") -> str:
    return f"""You are FinCo, a sharp financial co-pilot for people who pay mostly over UPI in India.
Do not just restate the data: look for hidden patterns, predict cashflow problems before
they happen and suggest concrete strategies. Amounts are in INR; write them with {currency_symbol}.

Before writing, work out for yourself:
- Burn rate: spend so far relative to the days elapsed in the month
- Small-ticket leakage: the total of UPI payments under {currency_symbol}500
- Liquidity: current balance against bills due in the next 10 days
- Goal reality: whether the current savings rate reaches each goal by its deadline
- Category outliers: categories that take an unusual share of spending

Write the report in Markdown with exactly these sections:

## 🚨 Cashflow Forecast
Status (Safe / Tight / Critical) and the projected month-end balance after upcoming bills,
followed by a blockquote with one specific warning or reassurance.

## 💸 Spending Habits & Insights
The top two or three categories with their totals and one insight each, what the largest
discretionary category could have done for a goal, and a blockquote naming a behaviour pattern.

## 📊 Financial Vitals
A table with columns Metric | Value | Health covering Monthly Burn, UPI Velocity
(transactions per week) and Savings Rate.

## 🎯 Goal Acceleration
Each goal marked On Track or At Risk, with a blockquote suggesting a trade-off that
reaches it sooner.

## 💡 Smart Moves & Product Match
Recurring waste to cut, and financial products that fit how the user actually spends.

## 🚀 3 Concrete Actions for Today
A numbered list of three actions.

Tone: sharp, data-driven, forward-looking, a little witty. Bold the key numbers."""


def ledger_snapshot(state: LedgerState) -> dict:
    """The part of the ledger the advisor is allowed to see, as JSON-ready data."""
    return state.model_dump(
        mode="json",
        include={"goals", "transactions", "current_balance", "monthly_income", "bills"},
    )


def analysis_prompt(state: LedgerState, currency_symbol: str = "₹") -> str:
    snapshot = ledger_snapshot(state)
    goal_names = [g.name for g in state.goals[:2]]
    goals_clause = " or ".join(f"'{name}'" for name in goal_names) or "their savings"

    return f"""Perform a deep financial analysis of this user.

1. Calculate their burn rate (daily spend).
2. Analyse their UPI velocity (how often they make small payments under {currency_symbol}500).
3. Break spending down by category, name the top two or three and where savings are possible.
4. Project the month-end balance after upcoming bills.
5. Suggest specific trade-offs to reach {goals_clause} goals faster.

USER_GOALS:
{json.dumps(snapshot["goals"], indent=2)}

RECENT_TRANSACTIONS:
{json.dumps(snapshot["transactions"], indent=2)}

CURRENT_BALANCE: {currency_symbol}{snapshot["current_balance"]}

MONTHLY_INCOME: {currency_symbol}{snapshot["monthly_income"]}

UPCOMING_BILLS:
{json.dumps(snapshot["bills"], indent=2)}
"""


def chat_context(state: LedgerState, currency_symbol: str = "₹") -> str:
    """Short live context appended to the system instruction for chat."""
    next_bill: Optional[str] = None
    unpaid = sorted(state.unpaid_bills, key=lambda b: b.due_date)
    if unpaid:
        next_bill = unpaid[0].name

    return f"""CURRENT CONTEXT:
Balance: {currency_symbol}{state.current_balance}
Next Bill: {next_bill or 'None'}

If the user asks about general financial information (rates, news, stocks), use your search tool."""


def parse_prompt(text: str, today: date) -> str:
    categories = ", ".join(c.value for c in Category)
    types = ", ".join(t.value for t in TransactionType)
    methods = ", ".join(m.value for m in PARSEABLE_METHODS)

    return f"""Parse the following transaction description into structured JSON data.
Current Year is {today.year}.

Input text: "{text}"

Respond with ONLY a JSON object with exactly these fields:
- merchant: name of the merchant or person paid
- amount: amount in INR, as a number
- category: one of [{categories}]
- type: one of [{types}]
- method: one of [{methods}]; use UPI if not specified

If the text does not describe a transaction, respond with {{}}."""
