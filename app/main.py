"""
Streamlit Frontend for Budget Tracker

The page a user keeps open all month: pick a month, add expenses, browse
and filter the list, and look at where the money went.

DESIGN PRINCIPLES:
1. Everything shown comes from the session's last render
2. Row buttons address rows by their position in the visible list
3. Destructive actions (import) need an explicit confirmation
4. The tracker core never raises for bad input; the page just re-renders
"""

from datetime import date
from typing import Optional

import streamlit as st

from budget_tracker.audit import AuditLogger
from budget_tracker.config import get_settings, validate_all_settings
from budget_tracker.formatting import format_eur, month_name
from budget_tracker.models.categories import ALL, CategoryTaxonomy
from budget_tracker.models.expense import MONTH_NAMES
from budget_tracker.orchestrator import BudgetSession, MonthView, create_shared_components
from budget_tracker.queries import ChartDimension, chart_labels, is_no_data
from budget_tracker.services.backup import BackupParseError, BackupShapeError
from budget_tracker.services.storage import LedgerStore, StorageError


st.set_page_config(
    page_title="Budget Tracker",
    page_icon="💶",
    layout="wide",
    initial_sidebar_state="expanded",
)


@st.cache_resource
def get_shared_components() -> tuple[LedgerStore, CategoryTaxonomy, AuditLogger]:
    """Ledger store, taxonomy and audit logger shared by all browser sessions (cached)."""
    try:
        return create_shared_components(use_storage=True)
    except StorageError as e:
        st.error(f"Could not open your ledger: {e}")
        return create_shared_components(use_storage=False)


def get_session() -> BudgetSession:
    """Browsing session of this browser tab, over the shared ledger."""
    if "budget_session" not in st.session_state:
        store, taxonomy, audit_logger = get_shared_components()
        st.session_state.budget_session = BudgetSession(store, taxonomy, audit_logger)
    return st.session_state.budget_session


def _symbol() -> str:
    return get_settings().app.currency_symbol


def render_sidebar(session: BudgetSession) -> None:
    """Month selection and chart options."""
    settings = get_settings().app
    years = settings.year_range
    context = session.context

    st.sidebar.title("💶 Budget Tracker")
    st.sidebar.markdown("---")

    year = st.sidebar.selectbox(
        "Year",
        options=years,
        index=years.index(context.year) if context.year in years else 0,
    )
    month = st.sidebar.selectbox(
        "Month",
        options=list(range(12)),
        index=context.month,
        format_func=month_name,
    )
    if (year, month) != (context.year, context.month):
        session.select_month(year, month)

    if st.sidebar.button("📅 Jump to today"):
        session.jump_to_today(date.today())
        st.rerun()

    st.sidebar.markdown("---")
    dimension = st.sidebar.radio(
        "Chart by",
        options=list(ChartDimension),
        index=list(ChartDimension).index(session.dimension),
        format_func=lambda d: "Main category" if d == ChartDimension.MAIN else "Subcategory",
    )
    if dimension != session.dimension:
        session.set_chart_view(dimension)

    options = session.taxonomy.compare_options()
    compare = st.sidebar.selectbox(
        "Compare months",
        options=options,
        index=options.index(session.compare) if session.compare in options else 0,
    )
    if compare != session.compare:
        session.set_compare(compare)


def render_reminder(session: BudgetSession) -> None:
    message = session.reminder_message()
    if not message:
        return
    col1, col2 = st.columns([4, 1])
    with col1:
        st.info(message)
    with col2:
        if st.button("Dismiss"):
            session.backup.dismiss_reminder(session.context.year, session.context.month)
            st.rerun()


def render_add_form(session: BudgetSession) -> None:
    """Add form; pre-filled when a row was taken out for editing."""
    draft = st.session_state.get("edit_draft") or {}
    taxonomy = session.taxonomy
    mains = taxonomy.main_categories()

    st.subheader(f"➕ Add expense: {month_name(session.context.month)} {session.context.year}")

    main = st.selectbox(
        "Category",
        options=mains,
        index=mains.index(draft["main"]) if draft.get("main") in mains else 0,
    )
    subs = taxonomy.subcategories(main)
    sub: Optional[str] = None
    if subs:
        sub = st.selectbox(
            "Subcategory",
            options=subs,
            index=subs.index(draft["sub"]) if draft.get("sub") in subs else 0,
        )

    with st.form("add_expense", clear_on_submit=True):
        amount = st.number_input(
            f"Amount ({_symbol()})",
            value=float(draft.get("amount", 0.0)),
            min_value=0.0,
            step=0.01,
            format="%.2f",
        )
        note = st.text_input("Note", value=draft.get("note", ""))
        recurring = st.checkbox("🔁 Repeat monthly", value=bool(draft.get("is_recurring")))
        submitted = st.form_submit_button("Add", type="primary")

    if submitted:
        expense = session.add(main, sub, amount, note, recurring)
        if expense is None:
            st.error("Please enter an amount greater than zero.")
        else:
            st.session_state.edit_draft = None
            st.rerun()


def render_filters(session: BudgetSession) -> None:
    taxonomy = session.taxonomy
    filters = session.filters
    col1, col2, col3 = st.columns(3)

    with col1:
        main_options = taxonomy.main_filter_options()
        main = st.selectbox(
            "Filter category",
            options=main_options,
            index=main_options.index(filters.main) if filters.main in main_options else 0,
        )
    with col2:
        sub_options = taxonomy.sub_filter_options(main)
        current_sub = filters.sub if main == filters.main else ALL
        sub = st.selectbox(
            "Filter subcategory",
            options=sub_options,
            index=sub_options.index(current_sub) if current_sub in sub_options else 0,
        )
    with col3:
        search = st.text_input("Search notes", value=filters.search)

    if (main, sub, search) != (filters.main, filters.sub, filters.search):
        session.set_filters(main=main, sub=sub if main == filters.main else None, search=search)
        st.rerun()


def render_expense_list(session: BudgetSession, view: MonthView) -> None:
    """Visible rows with their actions, plus the filtered total."""
    st.subheader("🧾 Expenses")
    render_filters(session)

    if not view.visible:
        st.caption("No expenses for this month.")

    for index, entry in enumerate(view.visible):
        expense = entry.expense
        col1, col2, col3, col4 = st.columns([5, 1, 1, 2])
        with col1:
            st.markdown(
                f"**{session.taxonomy.label(expense.main, expense.sub)}**  \n"
                f"-{format_eur(expense.amount, _symbol())}  \n"
                f"{expense.note}"
                + ("  \n🔁 Monthly" if expense.is_recurring else "")
            )
        with col2:
            if st.button("Edit", key=f"edit_{index}"):
                draft = session.edit_at(index)
                if draft is not None:
                    st.session_state.edit_draft = {
                        "main": draft.main,
                        "sub": draft.sub,
                        "amount": float(draft.amount),
                        "note": draft.note,
                        "is_recurring": draft.is_recurring,
                    }
                st.rerun()
        with col3:
            if st.button("Delete", key=f"delete_{index}"):
                session.delete_at(index)
                st.rerun()
        with col4:
            if expense.is_recurring and st.button("Stop Recurring", key=f"stop_{index}"):
                session.stop_recurring(index)
                st.rerun()

    st.markdown(f"### Total: {format_eur(view.visible_total, _symbol())}")


def render_charts(session: BudgetSession, view: MonthView) -> None:
    """Category breakdown of the whole month and the monthly comparison."""
    st.subheader("📊 Breakdown")
    totals = view.grouping.totals

    if is_no_data(view.percentages):
        st.caption("No data")
    else:
        rows = [
            {
                "Category": legend,
                "Amount": float(totals[label]),
                "Share (%)": round(view.percentages[label], 1),
                "Color": session.taxonomy.color_for(label, view.grouping.parents),
            }
            for legend, label in zip(chart_labels(totals), totals)
        ]
        st.dataframe(rows, hide_index=True, use_container_width=True)

    st.subheader(f"📈 {view.series.selector} by month, {view.series.year}")
    chart_rows = []
    for month, label in enumerate(view.series.labels):
        row = {"Month": f"{month + 1:02d} {label[:3]}"}
        for name, values in view.series.datasets.items():
            row[name] = float(values[month])
        chart_rows.append(row)
    st.bar_chart(chart_rows, x="Month", stack=True)


def render_annual_report(session: BudgetSession) -> None:
    report = session.annual_report()
    symbol = _symbol()

    with st.expander(f"🗂️ {report.title}"):
        if not report.has_data:
            st.caption("No expenses recorded for this year.")
            return

        st.markdown("**Yearly Category Summary**")
        st.dataframe(
            [
                {"Main Category": main, "Total": format_eur(total, symbol)}
                for main, total in report.category_totals.items()
            ],
            hide_index=True,
        )

        st.markdown("**Category by Month Breakdown**")
        matrix_rows = []
        for main, values in report.matrix.items():
            row = {"Category": main}
            row.update({name: format_eur(v, symbol) for name, v in zip(MONTH_NAMES, values)})
            matrix_rows.append(row)
        totals_row = {"Category": "Monthly Totals"}
        totals_row.update({
            name: format_eur(v, symbol) for name, v in zip(MONTH_NAMES, report.monthly_totals)
        })
        matrix_rows.append(totals_row)
        st.dataframe(matrix_rows, hide_index=True)

        st.markdown(f"### Yearly Total: {format_eur(report.yearly_total, symbol)}")


def render_backup(session: BudgetSession) -> None:
    st.sidebar.markdown("---")
    st.sidebar.markdown("### 💾 Backup")

    st.sidebar.download_button(
        "Save backup",
        data=session.backup.export_json(record=False),
        file_name=session.backup.suggested_filename(session.context.year),
        mime="application/json",
        on_click=session.backup.mark_backed_up,
    )

    uploaded = st.sidebar.file_uploader("Load backup", type=["json"])
    if uploaded is None:
        return

    st.sidebar.warning(
        "Loading a backup REPLACES your current data. "
        "This cannot be undone unless you saved a backup first."
    )
    if st.sidebar.button("Replace my data"):
        try:
            count = session.import_backup(uploaded.getvalue().decode("utf-8", errors="replace"))
        except BackupParseError:
            st.sidebar.error("Could not read that JSON file. Make sure it’s a valid backup.")
        except BackupShapeError:
            st.sidebar.error("This backup file doesn't look valid for this app.")
        else:
            st.sidebar.success(f"Backup loaded successfully ({count} records).")


def render_status() -> None:
    status = validate_all_settings()
    for key in ("storage", "app"):
        if not status.get(key, False):
            st.sidebar.error(f"❌ {key} settings: {status.get(f'{key}_error', 'invalid')}")


def main():
    """Main application entry point."""
    session = get_session()

    render_sidebar(session)
    render_status()
    render_backup(session)

    view = session.render()

    render_reminder(session)
    col_left, col_right = st.columns([3, 2])
    with col_left:
        render_add_form(session)
        st.markdown("---")
        render_expense_list(session, view)
    with col_right:
        render_charts(session, view)
        render_annual_report(session)


if __name__ == "__main__":
    main()
