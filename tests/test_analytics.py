"""
Tests for the AnalyticsEngine derivations.
"""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import SEED_DAY, make_bill, make_state, make_tx
from finco.analytics import (
    BudgetStatus,
    PersonaTier,
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
from finco.ledger import add_transaction
from finco.models import Category, TransactionDraft, TransactionType


class TestSpend:
    """Tests for spend aggregation."""

    def test_total_spent_ignores_credits(self, seed_state):
        assert total_spent(seed_state.transactions) == Decimal("29234")

    def test_category_spend(self, seed_state):
        spend = category_spend(seed_state.transactions)
        assert spend["Food"] == Decimal("4200")
        assert spend["Shopping"] == Decimal("6580")
        assert spend["Bills"] == Decimal("17400")
        assert "Salary" not in spend

    def test_breakdown_sorted_descending(self, seed_state):
        breakdown = category_breakdown(seed_state.transactions)
        amounts = [item.amount for item in breakdown]
        assert amounts == sorted(amounts, reverse=True)
        assert breakdown[0].category == "Bills"


class TestRecurring:
    """Tests for subscription detection."""

    def test_nearby_amounts_group_together(self):
        """649, 649 and 650 at Netflix are one subscription."""
        transactions = [
            make_tx("3", 650, "Netflix", Category.ENTERTAINMENT, day=date(2023, 10, 24)),
            make_tx("2", 649, "Netflix", Category.ENTERTAINMENT, day=date(2023, 9, 24)),
            make_tx("1", 649, "Netflix", Category.ENTERTAINMENT, day=date(2023, 8, 24)),
        ]
        recurring = detect_recurring(transactions)
        assert len(recurring) == 1
        assert recurring[0].merchant == "Netflix"
        assert recurring[0].count == 3
        assert recurring[0].amount == Decimal("650")
        assert recurring[0].last_date == date(2023, 10, 24)

    def test_reports_most_recent_regardless_of_order(self):
        transactions = [
            make_tx("1", 199, "Spotify", day=date(2023, 8, 1)),
            make_tx("2", 219, "Spotify", day=date(2023, 10, 1)),
            make_tx("3", 199, "Spotify", day=date(2023, 9, 1)),
        ]
        charge = detect_recurring(transactions)[0]
        assert charge.last_date == date(2023, 10, 1)
        assert charge.amount == Decimal("219")

    def test_different_buckets_split(self):
        transactions = [
            make_tx("1", 300, "Gym"),
            make_tx("2", 900, "Gym"),
        ]
        assert detect_recurring(transactions) == []

    def test_single_occurrence_not_recurring(self, seed_state):
        assert detect_recurring(seed_state.transactions) == []

    def test_transfers_and_credits_excluded(self):
        transactions = [
            make_tx("1", 1000, "FinVault Deposit", Category.TRANSFER),
            make_tx("2", 1000, "FinVault Deposit", Category.TRANSFER),
            make_tx("3", 500, "Employer", Category.SALARY, TransactionType.CREDIT),
            make_tx("4", 500, "Employer", Category.SALARY, TransactionType.CREDIT),
        ]
        assert detect_recurring(transactions) == []


class TestTrend:
    """Tests for the 7-day trend."""

    def test_seven_days_oldest_first(self, seed_state):
        trend = spend_trend(seed_state.transactions, today=SEED_DAY)
        assert len(trend) == 7
        assert trend[0].day == date(2023, 10, 19)
        assert trend[-1].day == SEED_DAY
        assert trend[0].label == "Thu"
        assert trend[-1].label == "Wed"

    def test_daily_totals_and_zero_fill(self, seed_state):
        trend = {p.day: p.spend for p in spend_trend(seed_state.transactions, today=SEED_DAY)}
        assert trend[date(2023, 10, 24)] == Decimal("1119")
        assert trend[date(2023, 10, 20)] == Decimal("935")
        # Only a salary credit on the 22nd
        assert trend[date(2023, 10, 22)] == Decimal("0")

    def test_future_and_old_transactions_ignored(self):
        transactions = [
            make_tx("1", 100, day=SEED_DAY + timedelta(days=1)),
            make_tx("2", 100, day=SEED_DAY - timedelta(days=7)),
        ]
        trend = spend_trend(transactions, today=SEED_DAY)
        assert all(p.spend == 0 for p in trend)


class TestHealthScore:
    """Tests for the health score heuristic."""

    def test_days_until(self):
        assert days_until(date(2023, 11, 1), date(2023, 10, 25)) == 7
        assert days_until(date(2023, 10, 24), date(2023, 10, 25)) == -1
        assert days_until(SEED_DAY, SEED_DAY) == 0

    def test_savings_ratio_zero_income(self):
        assert savings_ratio(Decimal("0"), Decimal("100")) == 0
        assert savings_ratio(Decimal("-5"), Decimal("100")) == 0

    def test_overdue_bill_and_covering_balance(self):
        """A 12,000 bill due yesterday costs 20; a 24,500 balance covers it for +5."""
        today = date(2023, 10, 25)
        state = make_state(bills=[make_bill("b1", 12000, today - timedelta(days=1))])
        report = health_report(state, today)

        # 70 base, +15 savings (nothing spent), -20 overdue, +5 balance covers bills
        assert report.score == 70
        assert report.has_overdue_bill is True
        assert report.bills_total == Decimal("12000")

    def test_no_bills_and_strong_savings(self):
        state = make_state()
        # 70 + 15 savings + 10 no bills + 5 balance
        assert health_score(state, SEED_DAY) == 100

    def test_seed_score(self, seed_state):
        """Seed: +15 savings, bills not yet due, balance below 37,999 of bills."""
        report = health_report(seed_state, SEED_DAY)
        assert report.score == 70
        assert report.persona.tier == PersonaTier.BALANCED
        assert report.unpaid_bill_count == 3

    def test_paid_bills_ignored(self):
        state = make_state(bills=[make_bill("b1", 99999, SEED_DAY - timedelta(days=30), is_paid=True)])
        assert health_report(state, SEED_DAY).has_overdue_bill is False

    @pytest.mark.parametrize("income,balance,spend", [
        ("0", "0", "0"),
        ("0", "-50000", "100000"),
        ("-1000", "100", "5"),
        ("1", "-1", "1000000"),
        ("85000", "1000000", "0"),
    ])
    def test_score_always_in_range(self, income, balance, spend):
        """The score is clamped to [0, 100] for any inputs."""
        state = make_state(
            transactions=[make_tx("1", spend)],
            bills=[make_bill("b1", 50000, SEED_DAY - timedelta(days=3))],
            monthly_income=income,
            current_balance=balance,
        )
        assert 0 <= health_score(state, SEED_DAY) <= 100

    def test_all_penalties_stack(self):
        state = make_state(
            transactions=[make_tx("1", 200000)],
            bills=[make_bill("b1", 50000, SEED_DAY - timedelta(days=3))],
            monthly_income="1000",
            current_balance="0",
        )
        # 70 - 15 - 20 - 15
        assert health_score(state, SEED_DAY) == 20

    def test_personas(self):
        assert persona_for(80).title == "Wealth Wizard"
        assert persona_for(79).tier == PersonaTier.BALANCED
        assert persona_for(50).title == "Balanced Builder"
        assert persona_for(49).title == "Cashflow Cadet"


class TestBudgetsRewardsGoals:
    """Tests for budget, reward and goal summaries."""

    def test_budget_utilization(self, seed_state):
        usage = {u.category: u for u in budget_utilization(seed_state)}
        assert usage["Food"].spent == Decimal("4200")
        assert usage["Food"].status == BudgetStatus.WATCH
        assert usage["Shopping"].percentage == 100
        assert usage["Shopping"].status == BudgetStatus.OVER
        assert usage["Transport"].status == BudgetStatus.ON_TRACK

    def test_budget_without_spend(self):
        state = make_state(budgets={"Health": Decimal("1000"), "Gifts": Decimal("0")})
        usage = {u.category: u for u in budget_utilization(state)}
        assert usage["Health"].percentage == 0
        assert usage["Gifts"].status == BudgetStatus.ON_TRACK

    @pytest.mark.parametrize("tokens,level,title", [
        (0, 1, "Novice"),
        (250, 3, "Smart Saver"),
        (450, 5, "DeFi Degen"),
        (999, 10, "Crypto King"),
    ])
    def test_reward_level(self, tokens, level, title):
        reward = reward_level(tokens)
        assert reward.level == level
        assert reward.title == title
        assert reward.progress == tokens % 100

    def test_goal_progress(self, seed_state):
        goal = seed_state.find_goal("g1")
        progress = goal_progress(goal, Decimal("10000"))
        assert progress.percentage == 30
        assert progress.remaining == Decimal("105000")
        assert progress.estimated_yield == Decimal("450")

    def test_goal_progress_caps_at_100(self, seed_state):
        goal = seed_state.find_goal("g1").model_copy(update={"current_amount": Decimal("200000")})
        progress = goal_progress(goal)
        assert progress.percentage == 100
        assert progress.remaining == 0


class TestSearchAndSnapshot:
    """Tests for search and the dashboard snapshot."""

    def test_search_merchant_case_insensitive(self, seed_state):
        results = search_transactions(seed_state.transactions, "SWIG")
        assert [t.merchant for t in results] == ["Swiggy"]

    def test_search_category(self, seed_state):
        results = search_transactions(seed_state.transactions, "food")
        assert len(results) == 5

    def test_empty_search_matches_all(self, seed_state):
        assert len(search_transactions(seed_state.transactions, "  ")) == 14

    def test_snapshot_tracks_ledger(self, seed_state):
        """Derived figures are recomputed from the ledger on every call."""
        before = dashboard_snapshot(seed_state, SEED_DAY)
        after_state = add_transaction(
            seed_state,
            TransactionDraft(merchant="Swiggy", amount=Decimal("450"), category=Category.FOOD),
            on=SEED_DAY,
        )
        after = dashboard_snapshot(after_state, SEED_DAY)

        assert after.health.total_spent == before.health.total_spent + 450
        assert after.trend[-1].spend == before.trend[-1].spend + 450
        assert after.reward.progress == before.reward.progress + 10

    def test_snapshot_upcoming_bills_sorted(self, seed_state):
        snapshot = dashboard_snapshot(seed_state, SEED_DAY)
        assert [bill_id for bill_id, _ in snapshot.upcoming_bills] == ["b2", "b1", "b3"]
        assert snapshot.upcoming_bills[0][1] == 7


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
