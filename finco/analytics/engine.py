"""
Analytics Engine

Read-only derivations over a LedgerState. Nothing here is cached:
every figure is recomputed from the ledger on demand, so the dashboard can
never show numbers that disagree with the transaction list.

All functions are deterministic given their inputs. Anything that depends
on "today" takes it as a parameter (defaulting to date.today()).
"""

from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from finco.models.ledger import (
    Category,
    Goal,
    LedgerState,
    Transaction,
)


ZERO = Decimal("0")
RECURRING_BUCKET = Decimal("100")
TREND_DAYS = 7

BASE_HEALTH_SCORE = 70


# =============================================================================
# RESULT MODELS
# =============================================================================

class CategorySpend(BaseModel):
    category: str
    amount: Decimal


class RecurringCharge(BaseModel):
    """A merchant charged about the same amount more than once."""

    merchant: str
    bucket: Decimal = Field(description="Amount rounded to the nearest 100")
    amount: Decimal = Field(description="Amount of the most recent charge")
    last_date: date
    count: int = Field(ge=2)


class TrendPoint(BaseModel):
    day: date
    label: str
    spend: Decimal


class PersonaTier(str, Enum):
    THRIVING = "thriving"
    BALANCED = "balanced"
    AT_RISK = "at-risk"


class Persona(BaseModel):
    tier: PersonaTier
    title: str
    description: str


class HealthReport(BaseModel):
    """The health score together with the inputs that produced it."""

    score: int = Field(ge=0, le=100)
    persona: Persona
    savings_ratio: Decimal
    total_spent: Decimal
    bills_total: Decimal
    has_overdue_bill: bool
    unpaid_bill_count: int


class BudgetStatus(str, Enum):
    ON_TRACK = "on_track"
    WATCH = "watch"
    OVER = "over"


class BudgetUsage(BaseModel):
    category: str
    limit: Decimal
    spent: Decimal
    percentage: int = Field(ge=0, le=100)
    status: BudgetStatus


class RewardLevel(BaseModel):
    level: int
    progress: int = Field(ge=0, lt=100)
    title: str


class GoalProgress(BaseModel):
    goal_id: str
    name: str
    percentage: int = Field(ge=0, le=100)
    remaining: Decimal
    estimated_yield: Decimal = Field(
        default=ZERO,
        description="Annual yield on the prospective stake at the goal's APY"
    )


class DashboardSnapshot(BaseModel):
    """Everything the dashboard shows, derived in one pass."""

    as_of: date
    health: HealthReport
    category_spend: list[CategorySpend]
    recurring: list[RecurringCharge]
    trend: list[TrendPoint]
    budgets: list[BudgetUsage]
    goals: list[GoalProgress]
    reward: RewardLevel
    upcoming_bills: list[tuple[str, int]] = Field(
        default_factory=list,
        description="(bill id, days until due) for unpaid bills, soonest first"
    )


# =============================================================================
# SPEND AGGREGATION
# =============================================================================

def _debits(transactions: Iterable[Transaction]) -> list[Transaction]:
    return [t for t in transactions if t.is_debit]


def total_spent(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in _debits(transactions)), ZERO)


def category_spend(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Debit totals keyed by category name."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in _debits(transactions):
        totals[t.category.value] += t.amount
    return dict(totals)


def category_breakdown(transactions: Iterable[Transaction]) -> list[CategorySpend]:
    """Category totals, largest first, for charting."""
    totals = category_spend(transactions)
    return [
        CategorySpend(category=name, amount=amount)
        for name, amount in sorted(totals.items(), key=lambda item: item[1], reverse=True)
    ]


# =============================================================================
# RECURRING CHARGES
# =============================================================================

def recurring_bucket(amount: Decimal) -> Decimal:
    """
    Round an amount to the nearest 100.

    Exact halves round to the even hundred (650 -> 600, 750 -> 800).
    """
    return round(amount / RECURRING_BUCKET) * RECURRING_BUCKET


def detect_recurring(transactions: Iterable[Transaction]) -> list[RecurringCharge]:
    """
    Likely subscriptions: debits (other than transfers) to the same merchant
    whose amounts fall in the same 100-wide bucket, seen at least twice.

    This is a best-effort heuristic. A price change that crosses a bucket
    boundary splits a subscription in two; two different purchases of a
    similar size at one merchant look like a subscription.
    """
    groups: dict[tuple[str, Decimal], dict] = {}

    for t in transactions:
        if not t.is_debit or t.category == Category.TRANSFER:
            continue
        key = (t.merchant, recurring_bucket(t.amount))
        group = groups.get(key)
        if group is None:
            groups[key] = {"count": 1, "latest": t}
            continue
        group["count"] += 1
        if t.date > group["latest"].date:
            group["latest"] = t

    return [
        RecurringCharge(
            merchant=merchant,
            bucket=bucket,
            amount=group["latest"].amount,
            last_date=group["latest"].date,
            count=group["count"],
        )
        for (merchant, bucket), group in groups.items()
        if group["count"] >= 2
    ]


# =============================================================================
# TREND
# =============================================================================

def spend_trend(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
    days: int = TREND_DAYS,
) -> list[TrendPoint]:
    """Daily debit totals for the last `days` days, oldest first, zero-filled."""
    today = today or date.today()
    per_day: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for t in _debits(transactions):
        per_day[t.date] += t.amount

    points = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        points.append(TrendPoint(day=day, label=day.strftime("%a"), spend=per_day.get(day, ZERO)))
    return points


# =============================================================================
# HEALTH SCORE
# =============================================================================

def days_until(due: date, today: Optional[date] = None) -> int:
    """Whole days from today to `due`; negative once the date has passed."""
    return (due - (today or date.today())).days


def savings_ratio(monthly_income: Decimal, spent: Decimal) -> Decimal:
    """Share of income left after spending. Defined as 0 when there is no income."""
    if monthly_income <= 0:
        return ZERO
    return (monthly_income - spent) / monthly_income


_PERSONAS = {
    PersonaTier.THRIVING: Persona(
        tier=PersonaTier.THRIVING,
        title="Wealth Wizard",
        description="Your habits are impeccable.",
    ),
    PersonaTier.BALANCED: Persona(
        tier=PersonaTier.BALANCED,
        title="Balanced Builder",
        description="Good foundation, room to grow.",
    ),
    PersonaTier.AT_RISK: Persona(
        tier=PersonaTier.AT_RISK,
        title="Cashflow Cadet",
        description="Immediate attention needed.",
    ),
}


def persona_for(score: int) -> Persona:
    if score >= 80:
        return _PERSONAS[PersonaTier.THRIVING]
    if score >= 50:
        return _PERSONAS[PersonaTier.BALANCED]
    return _PERSONAS[PersonaTier.AT_RISK]


def health_report(state: LedgerState, today: Optional[date] = None) -> HealthReport:
    """
    Heuristic 0-100 financial health score.

    Starting from 70:
    - savings ratio above 20% adds 15, above 10% adds 5, negative takes 15
    - any overdue unpaid bill takes 20; otherwise no unpaid bills adds 10
    - balance below the unpaid bills total takes 15, otherwise adds 5
    The result is clamped to [0, 100].
    """
    today = today or date.today()
    spent = total_spent(state.transactions)
    ratio = savings_ratio(state.monthly_income, spent)

    score = BASE_HEALTH_SCORE
    if ratio > Decimal("0.2"):
        score += 15
    elif ratio > Decimal("0.1"):
        score += 5
    elif ratio < 0:
        score -= 15

    unpaid = sorted(state.unpaid_bills, key=lambda b: b.due_date)
    has_overdue = any(days_until(b.due_date, today) < 0 for b in unpaid)
    if has_overdue:
        score -= 20
    elif not unpaid:
        score += 10

    bills_total = sum((b.amount for b in unpaid), ZERO)
    if state.current_balance < bills_total:
        score -= 15
    else:
        score += 5

    score = max(0, min(100, score))
    return HealthReport(
        score=score,
        persona=persona_for(score),
        savings_ratio=ratio,
        total_spent=spent,
        bills_total=bills_total,
        has_overdue_bill=has_overdue,
        unpaid_bill_count=len(unpaid),
    )


def health_score(state: LedgerState, today: Optional[date] = None) -> int:
    return health_report(state, today).score


# =============================================================================
# BUDGETS, REWARDS, GOALS
# =============================================================================

def budget_utilization(state: LedgerState) -> list[BudgetUsage]:
    """Spend against each budget limit, in the order the budgets were defined."""
    spend = category_spend(state.transactions)
    usage = []
    for category, limit in state.budgets.items():
        spent = spend.get(category, ZERO)
        if limit > 0:
            percentage = min(100, round(spent / limit * 100))
        else:
            percentage = 100 if spent > 0 else 0

        if percentage > 85:
            status = BudgetStatus.OVER
        elif percentage > 50:
            status = BudgetStatus.WATCH
        else:
            status = BudgetStatus.ON_TRACK

        usage.append(BudgetUsage(
            category=category,
            limit=limit,
            spent=spent,
            percentage=percentage,
            status=status,
        ))
    return usage


def reward_level(fin_tokens: int) -> RewardLevel:
    level = fin_tokens // 100 + 1
    if level >= 10:
        title = "Crypto King"
    elif level >= 5:
        title = "DeFi Degen"
    elif level >= 3:
        title = "Smart Saver"
    else:
        title = "Novice"
    return RewardLevel(level=level, progress=fin_tokens % 100, title=title)


def goal_progress(goal: Goal, stake: Decimal = ZERO) -> GoalProgress:
    """How far a goal is funded, and what a prospective stake would earn per year."""
    percentage = min(100, round(goal.current_amount / goal.target_amount * 100))
    estimated_yield = ZERO
    if goal.apy and stake > 0:
        estimated_yield = stake * Decimal(str(goal.apy)) / 100
    return GoalProgress(
        goal_id=goal.id,
        name=goal.name,
        percentage=percentage,
        remaining=max(ZERO, goal.target_amount - goal.current_amount),
        estimated_yield=estimated_yield,
    )


def search_transactions(
    transactions: Iterable[Transaction],
    term: str,
) -> list[Transaction]:
    """Case-insensitive match on merchant or category name. An empty term matches everything."""
    needle = term.strip().lower()
    return [
        t for t in transactions
        if needle in t.merchant.lower() or needle in t.category.value.lower()
    ]


def dashboard_snapshot(state: LedgerState, today: Optional[date] = None) -> DashboardSnapshot:
    today = today or date.today()
    unpaid = sorted(state.unpaid_bills, key=lambda b: b.due_date)
    return DashboardSnapshot(
        as_of=today,
        health=health_report(state, today),
        category_spend=category_breakdown(state.transactions),
        recurring=detect_recurring(state.transactions),
        trend=spend_trend(state.transactions, today),
        budgets=budget_utilization(state),
        goals=[goal_progress(g) for g in state.goals],
        reward=reward_level(state.fin_tokens),
        upcoming_bills=[(b.id, days_until(b.due_date, today)) for b in unpaid],
    )
