"""Analytics package: pure derivations over the ledger."""

from finco.analytics.engine import (
    BudgetStatus,
    BudgetUsage,
    CategorySpend,
    DashboardSnapshot,
    GoalProgress,
    HealthReport,
    Persona,
    PersonaTier,
    RecurringCharge,
    RewardLevel,
    TrendPoint,
    budget_utilization,
    category_breakdown,
    category_spend,
    dashboard_snapshot,
    days_until,
    detect_recurring,
    goal_progress,
    health_report,
    health_score,
    persona_for,
    reward_level,
    savings_ratio,
    search_transactions,
    spend_trend,
    total_spent,
)

__all__ = [
    "BudgetStatus",
    "BudgetUsage",
    "CategorySpend",
    "DashboardSnapshot",
    "GoalProgress",
    "HealthReport",
    "Persona",
    "PersonaTier",
    "RecurringCharge",
    "RewardLevel",
    "TrendPoint",
    "budget_utilization",
    "category_breakdown",
    "category_spend",
    "dashboard_snapshot",
    "days_until",
    "detect_recurring",
    "goal_progress",
    "health_report",
    "health_score",
    "persona_for",
    "reward_level",
    "savings_ratio",
    "search_transactions",
    "spend_trend",
    "total_spent",
]
