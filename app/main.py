"""
Streamlit Frontend for Money Manager

A personal finance tracker: record income and expenses in USD, EUR and
crypto, keep per-currency balances with adjustment notes, and see
monthly totals in USD or UAH.

DESIGN PRINCIPLES:
1. One month at a time, chosen in the sidebar
2. Every total is recomputed from the raw entries on each rerun
3. Clear messages instead of silent failures
4. Imports never overwrite a month without an explicit checkbox

Run with: streamlit run app/main.py
"""

import asyncio
from datetime import date

import plotly.express as px
import streamlit as st

from money_manager.config import validate_all_settings
from money_manager.currency import format_currency, to_display
from money_manager.ledger import (
    InvalidMonthKeyError,
    MonthExistsError,
    format_month,
    next_month_key,
    previous_month_key,
)
from money_manager.ledger.aggregator import available_balances, note_totals
from money_manager.models.ledger import (
    Bucket,
    Currency,
    DisplayCurrency,
    Language,
    RateSource,
    TransactionKind,
)
from money_manager.orchestrator import (
    AppComponents,
    BackupFlow,
    LedgerFlow,
    SyncResult,
    create_app_components,
)
from money_manager.preferences import THEME_PRESETS, AppPreferences, ThemeConfig
from money_manager.validation import categories_for, get_user_friendly_summary


# Page configuration
st.set_page_config(
    page_title="Money Manager",
    page_icon="💰",
    layout="wide",
    initial_sidebar_state="expanded",
)


def apply_theme(theme: ThemeConfig):
    """Inject the theme colours as CSS."""
    st.markdown(f"""
    <style>
        .stApp {{
            background-color: {theme.background_color};
            color: {theme.text_color};
        }}
        .stButton>button {{
            width: 100%;
            margin-top: 10px;
        }}
        .card {{
            padding: 20px;
            background-color: {theme.card_color};
            border-radius: 10px;
            border-left: 5px solid {theme.primary_color};
            margin: 10px 0;
        }}
        .big-number {{
            font-size: 2em;
            font-weight: bold;
            color: {theme.primary_color};
        }}
        .negative {{
            color: #dc3545;
        }}
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
def get_components() -> AppComponents:
    """Get or create application components (cached)."""
    return create_app_components()


def main():
    """Main application entry point."""
    components = get_components()
    prefs = components.preferences.load()
    apply_theme(prefs.theme)

    # Password gate
    if "authenticated" not in st.session_state:
        st.session_state.authenticated = False
    if components.password_gate.is_enabled and not st.session_state.authenticated:
        render_login_page(components)
        st.stop()

    rates = components.rate_service.get_rates()
    ledger_flow = components.ledger_flow

    # Sidebar navigation
    st.sidebar.title("💰 Money Manager")
    st.sidebar.markdown("---")

    month_key = render_month_selector(ledger_flow, prefs.language)

    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "💸 Transactions", "🏦 Balances & Notes", "☁️ Backup", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    source = "live" if rates.source == RateSource.LIVE else "fallback"
    st.sidebar.caption(
        f"Rates ({source}): 1 USD = {rates.usd_to_secondary:.2f} UAH · "
        f"1 EUR = {rates.eur_to_usd:.4f} USD"
    )
    if components.rate_service.last_error:
        st.sidebar.caption("⚠️ Live rates unavailable, using last known values")

    # Route to appropriate page
    if page == "📊 Dashboard":
        render_dashboard_page(ledger_flow, month_key, prefs, rates)
    elif page == "💸 Transactions":
        render_transactions_page(ledger_flow, month_key, prefs)
    elif page == "🏦 Balances & Notes":
        render_balances_page(ledger_flow, month_key, prefs)
    elif page == "☁️ Backup":
        render_backup_page(components, prefs)
    elif page == "⚙️ Settings":
        render_settings_page(components, prefs)


def render_login_page(components: AppComponents):
    """Render the password prompt."""
    st.title("🔒 Money Manager")
    with st.form("login_form"):
        candidate = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Unlock", type="primary")

    if submitted:
        if components.password_gate.check(candidate):
            st.session_state.authenticated = True
            st.rerun()
        else:
            st.error("Wrong password")


def render_month_selector(ledger_flow: LedgerFlow, language: Language) -> str:
    """Month navigation in the sidebar. Returns the selected month key."""
    months = ledger_flow.available_months()
    if st.session_state.get("month_key") not in months:
        st.session_state.month_key = months[-1]
    month_key = st.session_state.month_key

    previous_key = previous_month_key(month_key, months)
    next_key = next_month_key(month_key, months)

    col1, col2, col3 = st.sidebar.columns([1, 3, 1])
    with col1:
        if st.button("◀", disabled=previous_key is None, key="prev_month"):
            st.session_state.month_key = previous_key
            st.rerun()
    with col2:
        st.markdown(f"**{format_month(month_key, language)}**")
    with col3:
        if st.button("▶", disabled=next_key is None, key="next_month"):
            st.session_state.month_key = next_key
            st.rerun()

    with st.sidebar.expander("➕ New month"):
        new_key = st.text_input("Month (YYYY-MM)", value=date.today().strftime("%Y-%m"))
        if st.button("Create month"):
            try:
                ledger_flow.create_month(new_key.strip())
            except MonthExistsError:
                st.error(f"{new_key} already exists")
            except InvalidMonthKeyError:
                st.error("Use the YYYY-MM format, e.g. 2024-03")
            else:
                st.session_state.month_key = new_key.strip()
                st.rerun()

    return month_key


def render_dashboard_page(ledger_flow, month_key, prefs: AppPreferences, rates):
    """Render the monthly dashboard."""
    st.title(f"📊 {format_month(month_key, prefs.language)}")

    overview = ledger_flow.month_overview(month_key, rates, prefs.display_currency)
    summary = overview.summary
    display = prefs.display_currency

    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_currency(summary.total_income, display), f"{summary.income_count} entries")
    col2.metric("Expenses", format_currency(summary.total_expense, display), f"{summary.expense_count} entries")
    col3.metric("Net balance", format_currency(summary.net_balance, display))

    total = to_display(overview.portfolio_total_usd, display, rates)
    st.markdown(f"""
    <div class="card">
        <h4>Total portfolio</h4>
        <div class="big-number">{format_currency(total, display)}</div>
        <p>Available balances plus this month's net income</p>
    </div>
    """, unsafe_allow_html=True)

    st.markdown("---")
    col1, col2 = st.columns(2)
    with col1:
        render_category_chart("Expenses by category", overview.expense_by_category, display, rates)
    with col2:
        render_category_chart("Income by category", overview.income_by_category, display, rates)


def render_category_chart(title, breakdown, display, rates):
    """Pie chart of a category breakdown, or a "no data" message."""
    st.subheader(title)
    if not breakdown:
        st.info("No data for this month yet.")
        return

    fig = px.pie(
        names=list(breakdown.keys()),
        values=[float(to_display(amount, display, rates)) for amount in breakdown.values()],
        hole=0.4,
    )
    fig.update_traces(textinfo="percent+label")
    st.plotly_chart(fig, use_container_width=True)


def render_transactions_page(ledger_flow: LedgerFlow, month_key, prefs: AppPreferences):
    """Render the transaction form and log."""
    st.title("💸 Transactions")
    st.caption(format_month(month_key, prefs.language))

    kind = st.radio(
        "Type",
        list(TransactionKind),
        format_func=lambda k: k.value.title(),
        horizontal=True,
    )

    with st.form("transaction_form", clear_on_submit=True):
        col1, col2, col3 = st.columns(3)
        with col1:
            amount = st.text_input("Amount", placeholder="0.00")
        with col2:
            currency = st.selectbox("Currency", list(Currency), format_func=lambda c: c.value)
        with col3:
            category = st.selectbox("Category", categories_for(kind))
        description = st.text_input("Description", max_chars=500)
        submitted = st.form_submit_button("➕ Add", type="primary")

    if submitted:
        result, transaction = ledger_flow.add_transaction(
            month_key,
            kind=kind,
            amount=amount,
            category=category,
            currency=currency,
            description=description,
        )
        if transaction is None:
            st.error(get_user_friendly_summary(result))
        else:
            if result.warnings:
                st.warning(get_user_friendly_summary(result))
            st.success(f"Added {kind.value} of {amount} {currency.value}")

    st.markdown("---")
    record = ledger_flow.get_month(month_key)
    if not record.transactions:
        st.info("No transactions this month.")
        return

    for transaction in sorted(record.transactions, key=lambda t: t.timestamp, reverse=True):
        col1, col2, col3, col4 = st.columns([2, 3, 2, 1])
        sign = "+" if transaction.kind == TransactionKind.INCOME else "−"
        col1.markdown(f"**{sign}{format_currency(transaction.amount, transaction.currency)}**")
        col2.markdown(f"{transaction.category}  \n{transaction.description}")
        col3.caption(transaction.timestamp.strftime("%d.%m.%Y %H:%M"))
        if col4.button("🗑️", key=f"del_txn_{transaction.id}"):
            ledger_flow.delete_transaction(month_key, transaction.id)
            st.rerun()


def render_balances_page(ledger_flow: LedgerFlow, month_key, prefs: AppPreferences):
    """Render balances and per-bucket notes."""
    st.title("🏦 Balances & Notes")
    st.caption(format_month(month_key, prefs.language))

    record = ledger_flow.get_month(month_key)

    with st.form("balances_form"):
        col1, col2, col3 = st.columns(3)
        usd = col1.text_input("USD", value=str(record.balances.usd))
        eur = col2.text_input("EUR", value=str(record.balances.eur))
        crypto = col3.text_input("Crypto (USD)", value=str(record.balances.crypto))
        if st.form_submit_button("💾 Save balances", type="primary"):
            ledger_flow.update_balances(month_key, usd=usd, eur=eur, crypto=crypto)
            st.success("Balances saved")
            st.rerun()

    st.markdown("---")
    tabs = st.tabs([bucket.value.upper() for bucket in Bucket])
    for tab, bucket in zip(tabs, Bucket):
        with tab:
            render_bucket_notes(ledger_flow, month_key, bucket)


def render_bucket_notes(ledger_flow: LedgerFlow, month_key: str, bucket: Bucket):
    record = ledger_flow.get_month(month_key)
    notes = record.notes.get(bucket, [])
    totals = note_totals(notes)
    available = available_balances(record.balances, record.notes).get(bucket)

    col1, col2, col3 = st.columns(3)
    col1.metric("Balance", format_currency(record.balances.get(bucket), bucket.currency))
    col2.metric("Notes", format_currency(-totals.spent, bucket.currency))
    col3.metric("Available", format_currency(available, bucket.currency))

    with st.form(f"note_form_{bucket.value}", clear_on_submit=True):
        col1, col2 = st.columns(2)
        kind = col1.selectbox(
            "Type",
            list(TransactionKind),
            index=1,
            format_func=lambda k: k.value.title(),
            key=f"note_kind_{bucket.value}",
        )
        amount = col2.text_input("Amount", key=f"note_amount_{bucket.value}")
        description = st.text_input("Description", max_chars=500, key=f"note_desc_{bucket.value}")
        exchange_rate = st.text_input("Exchange rate (optional)", key=f"note_rate_{bucket.value}")
        submitted = st.form_submit_button("➕ Add note")

    if submitted:
        result, note = ledger_flow.add_note(
            month_key,
            bucket,
            amount=amount,
            description=description,
            kind=kind,
            exchange_rate=exchange_rate or None,
        )
        if note is None:
            st.error(get_user_friendly_summary(result))
        else:
            st.rerun()

    for note in notes:
        col1, col2, col3 = st.columns([2, 4, 1])
        sign = "+" if note.kind == TransactionKind.INCOME else "−"
        col1.markdown(f"**{sign}{format_currency(note.amount, bucket.currency)}**")
        rate = f" @ {note.exchange_rate}" if note.exchange_rate else ""
        col2.markdown(f"{note.description}{rate}  \n{note.date.strftime('%d.%m.%Y')}")
        if col3.button("🗑️", key=f"del_note_{note.id}"):
            ledger_flow.delete_note(month_key, bucket, note.id)
            st.rerun()


def render_backup_page(components: AppComponents, prefs: AppPreferences):
    """Render spreadsheet export and import."""
    st.title("☁️ Backup")
    st.markdown(
        "Export all months to a Google spreadsheet, or import them back. "
        "Sheets used: **Transactions** and **Balances**."
    )
    backup_flow: BackupFlow = components.backup_flow

    access_token = st.text_input(
        "Google access token",
        type="password",
        help="Leave empty to use the service account configured on the server",
    )
    spreadsheet_id = st.text_input("Spreadsheet ID", value=prefs.spreadsheet_id or "")

    if spreadsheet_id and spreadsheet_id != prefs.spreadsheet_id:
        components.preferences.save(prefs.model_copy(update={"spreadsheet_id": spreadsheet_id}))

    col1, col2 = st.columns(2)
    with col1:
        if st.button("📤 Export", type="primary", disabled=not spreadsheet_id):
            with st.spinner("Exporting..."):
                result = run_async(backup_flow.export_to_sheets(access_token or None, spreadsheet_id))
            show_sync_result(result)
    with col2:
        if st.button("📥 Fetch backup", disabled=not spreadsheet_id):
            with st.spinner("Reading spreadsheet..."):
                result = run_async(backup_flow.fetch_from_sheets(access_token or None, spreadsheet_id))
            show_sync_result(result)
            st.session_state.pending_import = result if result.success else None

    pending: SyncResult = st.session_state.get("pending_import")
    if pending is None:
        return

    st.markdown("---")
    st.subheader("Apply import")
    st.markdown(f"Months in backup: {', '.join(pending.imported.months)}")
    if pending.pending_overwrites:
        st.warning("These months already exist here. Tick the ones to overwrite:")
        for key in pending.pending_overwrites:
            st.checkbox(f"Overwrite {key}", key=f"overwrite_{key}")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("✅ Apply import", type="primary"):
            result = backup_flow.apply_import(
                pending.imported,
                confirm_overwrite=lambda key: bool(st.session_state.get(f"overwrite_{key}", False)),
                correlation_id=pending.correlation_id,
            )
            st.session_state.pending_import = None
            st.success(result.message)
    with col2:
        if st.button("❌ Cancel"):
            st.session_state.pending_import = None
            st.rerun()


def show_sync_result(result: SyncResult):
    if result.success:
        st.success(result.message)
    else:
        st.error(result.message)


def render_settings_page(components: AppComponents, prefs: AppPreferences):
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Preferences")
    with st.form("preferences_form"):
        language = st.selectbox(
            "Language",
            list(Language),
            index=list(Language).index(prefs.language),
            format_func=lambda lang: {"en": "English", "ru": "Русский", "uk": "Українська"}[lang.value],
        )
        display_currency = st.selectbox(
            "Display currency",
            list(DisplayCurrency),
            index=list(DisplayCurrency).index(prefs.display_currency),
            format_func=lambda c: c.value,
        )
        theme_names = list(THEME_PRESETS)
        theme_name = st.selectbox(
            "Theme",
            theme_names,
            index=theme_names.index(prefs.theme.name) if prefs.theme.name in theme_names else 0,
            format_func=str.title,
        )
        if st.form_submit_button("💾 Save", type="primary"):
            components.preferences.save(prefs.model_copy(update={
                "language": language,
                "display_currency": display_currency,
                "theme": ThemeConfig.preset(theme_name),
            }))
            st.rerun()

    st.markdown("### Password")
    gate = components.password_gate
    with st.form("password_form", clear_on_submit=True):
        new_password = st.text_input("New password", type="password")
        confirm_password = st.text_input("Confirm password", type="password")
        if st.form_submit_button("Set password"):
            result = gate.set_password(new_password, confirm_password)
            if result.is_valid:
                st.session_state.authenticated = True
                st.success("Password set")
            else:
                st.error(get_user_friendly_summary(result))
    if gate.is_enabled and st.button("Remove password"):
        gate.remove_password()
        st.success("Password removed")

    st.markdown("---")
    st.markdown("### Configuration Status")
    status = validate_all_settings()
    sections = [
        ("Exchange rates", "rates"),
        ("Google Sheets", "google_sheets"),
        ("Application", "app"),
    ]
    for name, key in sections:
        if status.get(key, False):
            st.success(f"✅ {name}")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    with st.expander("📝 Recent activity"):
        events = components.audit_logger.recent_events(limit=20)
        if not events:
            st.caption("Nothing yet.")
        for event in events:
            st.markdown(f"`{event.timestamp:%H:%M:%S}` {event.description}")


if __name__ == "__main__":
    main()
