"""
Streamlit Frontend for FinCo

The dashboard a user opens every day: balance, health score, where the
money went, upcoming bills, goals, and the AI advisor.

DESIGN PRINCIPLES:
1. Every number on screen comes from the AnalyticsEngine
2. Every action goes through the LedgerSession (validated and audited)
3. Clear error messages in simple language
4. Pending transfers are visible and cannot be re-submitted

The advisor never changes the ledger:
- A parsed transaction is shown as a draft
- The user confirms it before it is logged
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from finco.agents import AdvisorFailure
from finco.analytics import BudgetStatus, goal_progress, search_transactions
from finco.config import get_settings, validate_all_settings
from finco.models.ledger import (
    Category,
    Goal,
    PaymentMethod,
    TransactionDraft,
    TransactionType,
    VaultDirection,
)
from finco.orchestrator import (
    AdvisorPhase,
    AdvisorSession,
    DuplicateSubmissionError,
    LedgerError,
    LedgerSession,
    SessionError,
    create_app_components,
)


# Page configuration
st.set_page_config(
    page_title="FinCo",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

# Custom CSS for better UX
st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .big-number {
        font-size: 2.5em;
        font-weight: bold;
        color: #2c3e50;
    }
</style>
""", unsafe_allow_html=True)


CURRENCY = get_settings().app.currency_symbol

_BUDGET_ICONS = {
    BudgetStatus.ON_TRACK: "🟢",
    BudgetStatus.WATCH: "🟡",
    BudgetStatus.OVER: "🔴",
}


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def money(amount) -> str:
    return f"{CURRENCY}{Decimal(amount):,.0f}"


def get_components():
    """
    Get or create this user's components.

    Kept in session state rather than st.cache_resource: the ledger
    belongs to one browser session, not to the whole server.
    """
    if "components" not in st.session_state:
        st.session_state.components = create_app_components()
    return st.session_state.components


def submit(action, success_message: str) -> None:
    """Run a ledger action and report the outcome."""
    try:
        changed, validation = run_async(action)
    except DuplicateSubmissionError as e:
        st.warning(f"⏳ {e}")
        return
    except LedgerError as e:
        st.error(f"❌ {e}")
        return

    report_outcome(changed, validation, success_message)


def settle(action, pending_label: str, success_message: str) -> None:
    """
    Run a stake, transfer or vault move behind a status box.

    The box stays in its running state for the whole settlement delay,
    which is when the operation is pending in the ledger session.
    """
    with st.status(f"⏳ {pending_label}", expanded=False) as status:
        try:
            changed, validation = run_async(action)
        except DuplicateSubmissionError as e:
            status.update(label=f"⏳ {e}", state="error")
            return
        except LedgerError as e:
            status.update(label=f"❌ {e}", state="error")
            return

        if validation.is_valid:
            status.update(label="Settled", state="complete")
        else:
            status.update(label="Not settled", state="error")

    report_outcome(changed, validation, success_message)


def report_outcome(changed: bool, validation, success_message: str) -> None:
    ledger, _, _ = get_components()
    if not validation.is_valid:
        st.error(ledger.summarize(validation))
    elif changed:
        st.success(success_message)
        st.rerun()
    else:
        st.info("Nothing changed.")


def main():
    """Main application entry point."""
    ledger, advisor, audit_logger = get_components()

    st.sidebar.title("💰 FinCo")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        [
            "📊 Dashboard",
            "🧾 Transactions",
            "📅 Bills & Goals",
            "🔐 Wallet & Vault",
            "🤖 FinCo Advisor",
            "📜 Audit Trail",
            "⚙️ Settings",
        ],
        index=0,
    )

    state = ledger.state
    st.sidebar.markdown("---")
    st.sidebar.metric("Balance", money(state.current_balance))
    st.sidebar.metric("FinTokens", state.fin_tokens)
    if ledger.pending_operations:
        st.sidebar.info("⏳ Pending: " + ", ".join(sorted(ledger.pending_operations)))

    if page == "📊 Dashboard":
        render_dashboard_page(ledger)
    elif page == "🧾 Transactions":
        render_transactions_page(ledger, advisor)
    elif page == "📅 Bills & Goals":
        render_bills_goals_page(ledger)
    elif page == "🔐 Wallet & Vault":
        render_wallet_page(ledger)
    elif page == "🤖 FinCo Advisor":
        render_advisor_page(ledger, advisor)
    elif page == "📜 Audit Trail":
        render_audit_page(audit_logger)
    elif page == "⚙️ Settings":
        render_settings_page(ledger)


def render_dashboard_page(ledger: LedgerSession):
    """Render the overview page."""
    st.title("📊 Dashboard")
    snapshot = ledger.snapshot()
    health = snapshot.health
    state = ledger.state

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Wallet Balance", money(state.current_balance))
    col2.metric("Monthly Income", money(state.monthly_income))
    col3.metric("Spent", money(health.total_spent))
    col4.metric("Vault", money(state.vault_balance))

    st.markdown("---")
    col1, col2 = st.columns([1, 2])
    with col1:
        st.markdown("### Financial Health")
        st.markdown(f'<div class="big-number">{health.score}/100</div>', unsafe_allow_html=True)
        st.markdown(f"**{health.persona.title}** · {health.persona.description}")
        st.caption(f"Savings ratio: {health.savings_ratio:.0%}")

        reward = snapshot.reward
        st.markdown(f"### Level {reward.level} · {reward.title}")
        st.progress(reward.progress / 100)

    with col2:
        st.markdown("### Last 7 Days")
        st.bar_chart(
            {point.label: float(point.spend) for point in snapshot.trend},
        )

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        st.markdown("### Where the money went")
        for item in snapshot.category_spend:
            st.markdown(f"- **{item.category}**: {money(item.amount)}")

        st.markdown("### Budgets")
        for usage in snapshot.budgets:
            st.markdown(
                f"{_BUDGET_ICONS[usage.status]} **{usage.category}** "
                f"{money(usage.spent)} of {money(usage.limit)}"
            )
            st.progress(usage.percentage / 100)

    with col2:
        st.markdown("### Likely Subscriptions")
        if not snapshot.recurring:
            st.caption("No repeating charges found.")
        for charge in snapshot.recurring:
            st.markdown(
                f"- **{charge.merchant}** ~{money(charge.bucket)} "
                f"({charge.count}×, last {charge.last_date.strftime('%d %b')})"
            )

        st.markdown("### Upcoming Bills")
        for bill_id, days in snapshot.upcoming_bills:
            bill = state.find_bill(bill_id)
            when = f"overdue by {-days} days" if days < 0 else f"due in {days} days"
            st.markdown(f"- **{bill.name}** {money(bill.amount)} · {when}")


def render_transactions_page(ledger: LedgerSession, advisor: AdvisorSession):
    """Render the transaction list with add, smart add, search and export."""
    st.title("🧾 Transactions")
    state = ledger.state

    with st.expander("✨ Smart add (describe it in words)"):
        text = st.text_input("What happened?", placeholder="Paid 500 to Swiggy")
        if st.button("Understand", key="smart_parse") and text:
            with st.spinner("Reading..."):
                result = run_async(advisor.parse_transaction(text))
            if result.failure == AdvisorFailure.MISSING_CREDENTIAL:
                st.error("The advisor is not configured. Add GEMINI_API_KEY to your .env file.")
            elif result.failure in (AdvisorFailure.TIMEOUT, AdvisorFailure.SERVICE_ERROR):
                st.error(f"📡 {result.message}")
            elif not result.understood:
                st.warning(result.message)
            else:
                st.session_state.parsed_draft = result.draft

        draft = st.session_state.get("parsed_draft")
        if draft is not None:
            st.json(draft.model_dump(mode="json"))
            if st.button("✅ Log this transaction", type="primary"):
                st.session_state.parsed_draft = None
                submit(ledger.add_transaction(draft), "Transaction logged. +10 FinTokens")

    with st.expander("➕ Add manually"):
        col1, col2 = st.columns(2)
        with col1:
            merchant = st.text_input("Merchant")
            amount = st.number_input(f"Amount ({CURRENCY})", min_value=0.0, step=10.0)
            category = st.selectbox("Category", list(Category), format_func=lambda c: c.value)
        with col2:
            tx_type = st.selectbox("Type", list(TransactionType), format_func=lambda t: t.value.title())
            method = st.selectbox("Method", list(PaymentMethod), format_func=lambda m: m.value)
        if st.button("Add", type="primary"):
            draft = TransactionDraft(
                merchant=merchant or None,
                amount=Decimal(str(amount)),
                category=category,
                type=tx_type,
                method=method,
            )
            submit(ledger.add_transaction(draft), "Transaction logged. +10 FinTokens")

    st.markdown("---")
    term = st.text_input("🔍 Search merchant or category")
    transactions = search_transactions(state.transactions, term) if term else state.transactions

    for tx in transactions:
        col1, col2, col3 = st.columns([4, 2, 1])
        sign = "+" if tx.type == TransactionType.CREDIT else "−"
        col1.markdown(
            f"**{tx.merchant}** · {tx.category.value} · {tx.date.strftime('%d %b %Y')}"
            + (f"  \n`{tx.tx_hash}`" if tx.tx_hash else "")
        )
        col2.markdown(f"{sign}{money(tx.amount)}")
        if col3.button("🗑️", key=f"delete_{tx.id}"):
            submit(ledger.delete_transaction(tx.id), "Transaction removed.")

    st.download_button(
        "⬇️ Export CSV",
        data=ledger.export_csv(),
        file_name="finco_transactions.csv",
        mime="text/csv",
    )


def render_bills_goals_page(ledger: LedgerSession):
    """Render bills and savings goals."""
    st.title("📅 Bills & Goals")
    state = ledger.state

    st.markdown("### Bills")
    for bill in state.bills:
        col1, col2 = st.columns([4, 1])
        status = "✅ Paid" if bill.is_paid else f"Due {bill.due_date.strftime('%d %b %Y')}"
        col1.markdown(f"**{bill.name}** {money(bill.amount)} · {status}")
        if not bill.is_paid and col2.button("Pay", key=f"pay_{bill.id}"):
            submit(ledger.mark_bill_paid(bill.id), f"{bill.name} paid. +50 FinTokens")

    st.markdown("---")
    st.markdown("### Goals")
    for goal in state.goals:
        progress = goal_progress(goal)
        st.markdown(f"**{goal.name}** · {money(goal.current_amount)} of {money(goal.target_amount)}")
        st.progress(progress.percentage / 100)

        col1, col2 = st.columns([3, 1])
        stake = col1.number_input(
            "Stake amount",
            min_value=0.0,
            step=500.0,
            key=f"stake_amount_{goal.id}",
        )
        if stake and goal.apy:
            preview = goal_progress(goal, Decimal(str(stake)))
            col1.caption(f"Estimated yield: {money(preview.estimated_yield)} / year at {goal.apy}% APY")
        if col2.button("Stake", key=f"stake_{goal.id}"):
            settle(
                ledger.stake_to_goal(goal.id, Decimal(str(stake))),
                "Waiting for confirmation...",
                f"Staked into {goal.name}.",
            )

    with st.expander("➕ New goal"):
        name = st.text_input("Goal name")
        target = st.number_input(f"Target ({CURRENCY})", min_value=0.0, step=1000.0)
        deadline = st.date_input("Deadline", value=date.today())
        if st.button("Create goal") and name and target > 0:
            goal = Goal(name=name, target_amount=Decimal(str(target)), deadline=deadline)
            submit(ledger.add_goal(goal), "Goal created.")


def render_wallet_page(ledger: LedgerSession):
    """Render wallet connection, P2P transfers and the vault."""
    st.title("🔐 Wallet & Vault")
    state = ledger.state

    if state.wallet_connected:
        st.success(f"Connected: `{state.wallet_address}`")
        if st.button("Disconnect wallet"):
            submit(ledger.disconnect_wallet(), "Wallet disconnected.")
    elif st.button("🔗 Connect wallet", type="primary"):
        submit(ledger.connect_wallet(), "Wallet connected.")

    st.markdown("---")
    st.markdown("### Send money")
    recipient = st.text_input("Recipient")
    amount = st.number_input(f"Amount ({CURRENCY})", min_value=0.0, step=100.0, key="p2p_amount")
    if st.button("Send"):
        settle(
            ledger.send_money(recipient, Decimal(str(amount))),
            "Broadcasting...",
            f"Sent {money(amount)} to {recipient}. +25 FinTokens",
        )

    st.markdown("---")
    st.markdown(f"### FinVault · {money(state.vault_balance)}")
    direction = st.radio(
        "Direction",
        list(VaultDirection),
        format_func=lambda d: d.value.title(),
        horizontal=True,
    )
    vault_amount = st.number_input(f"Amount ({CURRENCY})", min_value=0.0, step=1000.0, key="vault_amount")
    if st.button("Move funds"):
        settle(
            ledger.vault_transfer(Decimal(str(vault_amount)), direction),
            "Settling...",
            "Vault updated.",
        )


def render_advisor_page(ledger: LedgerSession, advisor: AdvisorSession):
    """Render the analysis report and the chat."""
    st.title("🤖 FinCo Advisor")

    label = "🔄 Regenerate report" if advisor.report else "✨ Analyze my finances"
    if st.button(label, type="primary", disabled=advisor.phase == AdvisorPhase.REQUESTING):
        with st.spinner("Thinking deeply about your money..."):
            run_async(advisor.request_report(ledger.state))

    if advisor.phase == AdvisorPhase.FAILED and advisor.last_result:
        st.error(advisor.last_result.text)
        return
    if advisor.phase != AdvisorPhase.REPORT_READY:
        st.info("Generate a report to start chatting with FinCo.")
        return

    for turn in advisor.history:
        with st.chat_message("assistant" if turn.role == "model" else "user"):
            st.markdown(turn.content)

    message = st.chat_input("Ask FinCo anything...")
    if message:
        try:
            run_async(advisor.send_message(ledger.state, message))
        except SessionError as e:
            st.warning(str(e))
        st.rerun()


def render_audit_page(audit_logger):
    """Render the session's audit trail."""
    st.title("📜 Audit Trail")
    st.markdown("Everything that happened in this session, newest first.")

    if audit_logger.storage is None:
        st.info("Audit storage is not configured.")
        return

    events = run_async(audit_logger.storage.get_recent_events(limit=200))
    if not events:
        st.caption("Nothing yet.")
    for event in events:
        st.markdown(
            f"`{event.timestamp.strftime('%H:%M:%S')}` **{event.event_type.value}** · "
            f"{event.description}"
        )


def render_settings_page(ledger: LedgerSession):
    """Render income, budgets and connection status."""
    st.title("⚙️ Settings")
    state = ledger.state

    st.markdown("### Monthly income")
    income = st.number_input(
        f"Income ({CURRENCY})",
        min_value=0.0,
        value=float(state.monthly_income),
        step=1000.0,
    )
    if st.button("Update income"):
        submit(ledger.update_income(Decimal(str(income))), "Income updated.")

    st.markdown("### Budgets")
    category = st.selectbox("Category", [c.value for c in Category], key="budget_category")
    limit = st.number_input(
        f"Limit ({CURRENCY})",
        min_value=0.0,
        value=float(state.budgets.get(category, 0)),
        step=500.0,
    )
    if st.button("Update budget"):
        submit(ledger.update_budget(category, Decimal(str(limit))), f"{category} budget updated.")

    st.markdown("---")
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Gemini (AI Advisor)", "gemini"),
        ("Application", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(
        "To configure the application, create a `.env` file with your API key. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
