"""
Streamlit Frontend for Finance Tracker

The user interface for recording a monthly salary and monthly expenses,
and for reading back balances and spending analytics.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Clear error messages in simple language
3. Visual feedback for all operations
4. No hidden actions

Each page reads from the shared AppState. Writes go through the flows,
which update the state only after the backend confirmed them.
"""

import asyncio
from decimal import Decimal

import streamlit as st

from finance_tracker.analytics import (
    expense_analytics,
    finance_summary,
    monthly_balances,
)
from finance_tracker.config import get_settings, validate_all_settings
from finance_tracker.formatting import format_currency, format_percent
from finance_tracker.models.ledger import ExpenseCategory
from finance_tracker.models.summary import BalanceOptions
from finance_tracker.months import (
    current_month_key,
    make_month_key,
    month_options,
    parse_month_key,
    year_options,
)
from finance_tracker.orchestrator import (
    LedgerFlow,
    LedgerValidationError,
    NoUserSelectedError,
    UserFlow,
    create_app_components,
)
from finance_tracker.services.storage import StorageError
from finance_tracker.state import AppState


# Page configuration
st.set_page_config(
    page_title="Finance Tracker",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown("""
<style>
    .stButton>button {
        width: 100%;
        margin-top: 10px;
    }
    .suggestion-box {
        padding: 12px 20px;
        background-color: #cce5ff;
        border-radius: 10px;
        border-left: 5px solid #004085;
        margin: 8px 0;
    }
</style>
""", unsafe_allow_html=True)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize: {e}")
        return create_app_components(use_storage=False)


def money(amount) -> str:
    app = get_settings().app
    return format_currency(
        amount,
        symbol=app.currency_symbol,
        thousands_sep=app.thousands_separator,
        decimals=app.currency_decimals,
    )


def show_validation_error(error: LedgerValidationError) -> None:
    """Inline notice for a rejected form."""
    st.error("Please fix the following:")
    for issue in error.result.issues:
        if issue.severity == "error":
            st.markdown(f"- {issue.message}")
            if issue.suggested_fix:
                st.caption(f"💡 {issue.suggested_fix}")


def ensure_loaded(user_flow: UserFlow, ledger_flow: LedgerFlow, state: AppState) -> None:
    """Load users once per session and the ledger whenever the user changes."""
    if not st.session_state.get("users_loaded"):
        try:
            run_async(user_flow.load_users())
            st.session_state.users_loaded = True
        except StorageError as e:
            st.error(f"Could not load users: {e}")
            return

    loaded_for = st.session_state.get("ledger_loaded_for")
    if state.current_user and loaded_for != state.current_user.id:
        try:
            run_async(ledger_flow.load_user_data())
            st.session_state.ledger_loaded_for = state.current_user.id
            if state.offline:
                st.toast("Backend unreachable. Showing your last saved data.", icon="⚠️")
        except StorageError as e:
            st.error(f"Could not load your data: {e}")


def main():
    """Main application entry point."""
    user_flow, ledger_flow, state, _ = get_components()

    ensure_loaded(user_flow, ledger_flow, state)

    st.sidebar.title("💰 Finance Tracker")
    render_user_selector(user_flow, state)
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💵 Add Income", "🧾 Add Expense", "📅 Monthly Balance", "⚙️ Settings"],
        index=0,
    )

    if state.offline:
        st.sidebar.warning("Offline: showing cached data")

    if page == "⚙️ Settings":
        render_settings_page(state)
        return

    if state.current_user is None:
        st.title("👋 Welcome")
        st.info("Create or select a user in the sidebar to get started.")
        return

    if page == "📊 Dashboard":
        render_dashboard_page(state)
    elif page == "💵 Add Income":
        render_income_page(ledger_flow, state)
    elif page == "🧾 Add Expense":
        render_expense_page(ledger_flow, state)
    elif page == "📅 Monthly Balance":
        render_balance_page(ledger_flow, state)


def render_user_selector(user_flow: UserFlow, state: AppState):
    """Sidebar: pick a user or create a new one."""
    options = [None] + [u.id for u in state.users]
    names = {u.id: u.name for u in state.users}
    current = state.current_user_id

    selected = st.sidebar.selectbox(
        "User",
        options=options,
        index=options.index(current) if current in options else 0,
        format_func=lambda uid: "— choose —" if uid is None else names[uid],
    )

    if selected != current:
        if selected is None:
            run_async(user_flow.clear_current_user())
        else:
            run_async(user_flow.switch_user(selected))
        st.session_state.ledger_loaded_for = None
        st.rerun()

    with st.sidebar.expander("➕ New user"):
        name = st.text_input("Name", key="new_user_name")
        if st.button("Create user"):
            try:
                run_async(user_flow.create_user(name))
                st.session_state.ledger_loaded_for = None
                st.rerun()
            except LedgerValidationError as e:
                show_validation_error(e)
            except StorageError as e:
                st.toast(f"Could not create user: {e}", icon="❌")


def month_picker(key: str) -> str:
    """Month + year select boxes. Returns the month key."""
    app = get_settings().app
    default_year, default_month = parse_month_key(current_month_key())
    months = month_options(app.month_locale)
    years = year_options()

    col1, col2 = st.columns(2)
    with col1:
        month = st.selectbox(
            "Month",
            options=[m for m, _ in months],
            index=default_month - 1,
            format_func=lambda m: months[m - 1][1],
            key=f"{key}_month",
        )
    with col2:
        year = st.selectbox(
            "Year",
            options=years,
            index=years.index(default_year),
            key=f"{key}_year",
        )
    return make_month_key(year, month)


def render_dashboard_page(state: AppState):
    """Summary cards, analytics and the spending trend."""
    app = get_settings().app
    st.title(f"📊 {state.current_user.name}'s Dashboard")

    summary = finance_summary(state.incomes, state.expenses)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Income", money(summary.total_income))
    col2.metric("Total Expenses", money(summary.total_expenses))
    col3.metric("Balance", money(summary.balance))
    col4.metric("Savings", money(summary.total_savings))

    col1, col2 = st.columns(2)
    col1.metric("Average Income / month", money(summary.average_income))
    col2.metric("Average Expenses / month", money(summary.average_expenses))

    analytics = expense_analytics(
        state.expenses,
        limit=app.top_categories_limit,
        trend_threshold_percent=app.trend_threshold_percent,
        overspend_ratio=app.overspend_ratio,
        currency=money,
    )

    st.markdown("---")
    st.markdown("### 💡 Spending Analysis")
    if analytics is None:
        st.info("No expense data yet. Add your first expense to see the analysis.")
        return

    for suggestion in analytics.suggestions:
        st.markdown(f'<div class="suggestion-box">{suggestion}</div>', unsafe_allow_html=True)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown(f"#### Top {len(analytics.top_categories)} categories")
        for rank, category in enumerate(analytics.top_categories, start=1):
            st.markdown(
                f"{rank}. **{category.label}**: {money(category.amount)} "
                f"({format_percent(category.share)})"
            )
            st.progress(min(category.share / 100, 1.0))
    with col2:
        st.markdown("#### Spending per month")
        st.bar_chart(
            {
                "Month": [t.month for t in analytics.monthly_trend],
                "Spending": [float(t.amount) for t in analytics.monthly_trend],
            },
            x="Month",
            y="Spending",
        )
        if analytics.latest_change_percent is not None:
            st.caption(
                f"Latest month vs previous: {format_percent(analytics.latest_change_percent)}"
            )


def render_income_page(ledger_flow: LedgerFlow, state: AppState):
    """Record the salary for a month."""
    st.title("💵 Add Income")
    st.markdown("Saving a month that already has a salary replaces it.")

    month = month_picker("income")
    existing = state.income_for(month)
    if existing:
        st.info(f"{existing.month_name} already has a salary of {money(existing.salary)}.")

    salary = st.text_input("Salary", placeholder="e.g. 5.000.000")

    if st.button("💾 Save Income", type="primary"):
        try:
            income = run_async(ledger_flow.save_income(month, salary))
            st.success(f"Saved {money(income.salary)} for {income.month_name}.")
        except LedgerValidationError as e:
            show_validation_error(e)
        except (StorageError, NoUserSelectedError) as e:
            st.toast(f"Could not save income: {e}", icon="❌")


def _expense_rows() -> list[dict]:
    if "expense_rows" not in st.session_state:
        st.session_state.expense_rows = [{"label": "", "amount": "", "category": ""}]
    return st.session_state.expense_rows


def render_expense_rows(rows: list[dict], key: str) -> None:
    """Editable label / amount / category rows."""
    categories = [""] + [c.value for c in ExpenseCategory]
    for index, row in enumerate(rows):
        col1, col2, col3, col4 = st.columns([4, 3, 3, 1])
        row["label"] = col1.text_input(
            "Label", value=row["label"], key=f"{key}_label_{index}",
            placeholder="e.g. Food",
        )
        row["amount"] = col2.text_input(
            "Amount", value=str(row["amount"]), key=f"{key}_amount_{index}",
        )
        row["category"] = col3.selectbox(
            "Category",
            options=categories,
            index=categories.index(row.get("category") or ""),
            format_func=lambda c: "auto" if c == "" else c.title(),
            key=f"{key}_category_{index}",
        )
        if len(rows) > 1 and col4.button("🗑️", key=f"{key}_remove_{index}"):
            rows.pop(index)
            st.rerun()

    if st.button("➕ Add row", key=f"{key}_add"):
        rows.append({"label": "", "amount": "", "category": ""})
        st.rerun()


def render_expense_page(ledger_flow: LedgerFlow, state: AppState):
    """Record the itemised expenses for a month."""
    st.title("🧾 Add Expense")
    st.markdown("The total is the sum of the items. Saving a month again replaces its items.")

    month = month_picker("expense")
    existing = state.expense_for(month)
    if existing:
        st.info(f"{existing.month_name} already has expenses of {money(existing.total_expenses)}.")

    rows = _expense_rows()
    render_expense_rows(rows, "expense")

    if st.button("💾 Save Expenses", type="primary"):
        try:
            expense = run_async(ledger_flow.save_expense(month, rows))
            st.session_state.expense_rows = [{"label": "", "amount": "", "category": ""}]
            st.success(
                f"Saved {len(expense.expense_items)} items "
                f"({money(expense.total_expenses)}) for {expense.month_name}."
            )
        except LedgerValidationError as e:
            show_validation_error(e)
        except (StorageError, NoUserSelectedError) as e:
            st.toast(f"Could not save expenses: {e}", icon="❌")


def render_balance_page(ledger_flow: LedgerFlow, state: AppState):
    """Per-month balance with edit and delete."""
    st.title("📅 Monthly Balance")

    carry_over = st.toggle("Carry positive balance into the next month", value=False)
    balances = monthly_balances(
        state.incomes,
        state.expenses,
        BalanceOptions(with_carry_over=carry_over),
    )

    if not balances:
        st.info("No data yet. Add an income or an expense first.")
        return

    for entry in balances:
        icon = "🟢" if entry.balance >= 0 else "🔴"
        with st.expander(f"{icon} {entry.month_name}: {money(entry.balance)}"):
            col1, col2, col3, col4 = st.columns(4)
            col1.metric("Income", money(entry.income) if entry.has_income else "—")
            col2.metric("Expenses", money(entry.total_expenses))
            col3.metric("Savings", money(entry.savings))
            col4.metric("Balance", money(entry.balance))
            if carry_over and entry.carry_over:
                st.caption(f"Includes {money(entry.carry_over)} carried over")

            for item in entry.expense_details:
                st.markdown(f"- {item.label}: {money(item.amount)} ({item.category.value})")

            render_income_editor(ledger_flow, state, entry.month)
            render_expense_editor(ledger_flow, state, entry.month)


def render_income_editor(ledger_flow: LedgerFlow, state: AppState, month: str):
    income = state.income_for(month)
    if income is None:
        return

    st.markdown("**Income**")
    col1, col2, col3, col4 = st.columns([2, 2, 1, 1])
    label = col1.text_input(
        "Month name", value=income.month_name, key=f"edit_month_name_{income.id}",
    )
    salary = col2.text_input(
        "Salary", value=str(income.salary), key=f"edit_income_{income.id}",
    )
    if col3.button("Update", key=f"update_income_{income.id}"):
        try:
            run_async(ledger_flow.update_income(income.id, salary, month_name=label))
            st.rerun()
        except LedgerValidationError as e:
            show_validation_error(e)
        except StorageError as e:
            st.toast(f"Could not update income: {e}", icon="❌")
    if col4.button("Delete", key=f"delete_income_{income.id}"):
        try:
            run_async(ledger_flow.delete_income(income.id))
            st.rerun()
        except StorageError as e:
            st.toast(f"Could not delete income: {e}", icon="❌")


def render_expense_editor(ledger_flow: LedgerFlow, state: AppState, month: str):
    expense = state.expense_for(month)
    if expense is None:
        return

    st.markdown("**Expenses**")
    key = f"edit_rows_{expense.id}"
    if key not in st.session_state:
        st.session_state[key] = [
            {"label": i.label, "amount": str(i.amount), "category": i.category.value}
            for i in expense.expense_items
        ] or [{"label": "", "amount": "", "category": ""}]
    render_expense_rows(st.session_state[key], key)

    col1, col2 = st.columns(2)
    if col1.button("Update expenses", key=f"update_expense_{expense.id}"):
        try:
            run_async(ledger_flow.update_expense(expense.id, st.session_state[key]))
            del st.session_state[key]
            st.rerun()
        except LedgerValidationError as e:
            show_validation_error(e)
        except StorageError as e:
            st.toast(f"Could not update expenses: {e}", icon="❌")
    if col2.button("Delete expenses", key=f"delete_expense_{expense.id}"):
        try:
            run_async(ledger_flow.delete_expense(expense.id))
            st.session_state.pop(key, None)
            st.rerun()
        except StorageError as e:
            st.toast(f"Could not delete expenses: {e}", icon="❌")


def render_settings_page(state: AppState):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    status = validate_all_settings()
    app = get_settings().app

    if app.storage_backend == "memory":
        st.warning("Using in-memory storage. Data is lost when the app restarts.")
    elif status.get("google_sheets", False):
        st.success("✅ Google Sheets (Storage) - Configured")
    else:
        error = status.get("google_sheets_error", "Not configured")
        st.error(f"❌ Google Sheets (Storage) - {error}")

    if state.offline:
        st.warning("The last load fell back to the offline snapshot.")

    st.markdown("---")
    st.markdown("### Display")
    st.markdown(f"- Currency: {money(Decimal('1234567'))}")
    st.markdown(f"- Savings keywords: {', '.join(app.savings_keywords_list)}")
    st.markdown(f"- Local cache: `{app.cache_path}`")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your settings. "
        "See `.env.example` for the available variables."
    )


if __name__ == "__main__":
    main()
