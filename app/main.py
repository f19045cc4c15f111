import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import logging

import pandas as pd
import plotly.express as px
import streamlit as st

from ledger.backend import InMemoryBackend
from ledger.config import get_settings
from ledger.domain import format_value, to_minor_units
from ledger.filters import Scope
from ledger.ranges import DateFilter, format_date_local
from ledger.services import ReportService
from ledger.store import EntityStore

settings = get_settings()
logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

st.set_page_config(page_title="Finance Ledger", layout="wide")


def run(coro):
    return asyncio.run(coro)


def show_result(result, success: str) -> None:
    if result.is_left():
        st.error(result.get_error())
    else:
        st.success(success)
        st.rerun()


if "store" not in st.session_state:
    backend = InMemoryBackend.from_seed(settings.seed_path)
    store = EntityStore(backend)
    loaded = run(store.load_all())
    if loaded.is_left():
        logger.error("Initial load failed: %s", loaded.get_error())
    st.session_state.store = store

store: EntityStore = st.session_state.store
money = lambda v: format_value(v, settings.currency)

st.sidebar.markdown("### 🔎 Period")
kinds = [k.value for k in DateFilter]
kind = st.sidebar.radio("Filter", kinds, index=kinds.index(settings.default_filter.value))
custom_from = custom_to = None
if kind == DateFilter.CUSTOM.value:
    d_from = st.sidebar.date_input("From", value=None)
    d_to = st.sidebar.date_input("To", value=None)
    custom_from = format_date_local(d_from) if d_from else None
    custom_to = format_date_local(d_to) if d_to else None

cat_names = {c.id: c.name for c in store.categories}
sub_names = {s.id: f"{cat_names.get(s.category_id, '?')} / {s.name}" for s in store.subcategories}
scope_kind = st.sidebar.selectbox("Scope", ["All", "Category", "Subcategory"])
scope = None
if scope_kind == "Category" and cat_names:
    scope = Scope(category_id=st.sidebar.selectbox("Category", list(cat_names), format_func=cat_names.get))
elif scope_kind == "Subcategory" and sub_names:
    scope = Scope(subcategory_id=st.sidebar.selectbox("Subcategory", list(sub_names), format_func=sub_names.get))

if st.sidebar.button("🔄 Reload"):
    show_result(run(store.load_all()), "Reloaded")
if store.error:
    st.sidebar.error(store.error)

report = ReportService(store).build(kind, custom_from=custom_from, custom_to=custom_to, scope=scope)

menu = st.sidebar.radio("Menu", ["📊 Overview", "🧾 Operations", "🗂 Categories"])

if menu == "📊 Overview":
    st.title("📊 Overview")
    k1, k2, k3, k4 = st.columns(4)
    k1.metric("Categories", report.summary.category_count)
    k2.metric("Subcategories", report.summary.subcategory_count)
    k3.metric("Operations", report.summary.count)
    k4.metric("Total", money(report.summary.total_value))
    st.caption(f"{report.range.start or '…'} → {report.range.end or '…'}")

    if report.categories:
        df = pd.DataFrame([b._asdict() for b in report.categories])
        df["amount"] = df["total"] / 100
        fig = px.bar(
            df, x="percentage", y="name", orientation="h",
            hover_data=["amount"], labels={"percentage": "%", "name": "Category"},
            template="plotly_dark",
        )
        st.plotly_chart(fig, use_container_width=True)
    else:
        st.info("No operations in this period.")

elif menu == "🧾 Operations":
    st.title("🧾 Operations")
    for group in report.grouping.groups:
        with st.expander(f"{group.category.name} · {money(group.total)} · {group.operation_count} operations"):
            for sub_group in group.subcategories:
                st.markdown(f"**{sub_group.subcategory.name}** · {money(sub_group.total)}")
                for op in sub_group.operations:
                    c1, c2, c3 = st.columns([2, 2, 1])
                    c1.write(op.date)
                    c2.write(money(op.value))
                    if c3.button("🗑", key=f"del_op_{op.id}"):
                        show_result(run(store.remove_operation(op.id)), "Operation removed")
    if report.grouping.dropped:
        st.warning(f"{report.grouping.dropped} operations reference missing categories")

    st.subheader("➕ Add operation")
    with st.form("operation_form", clear_on_submit=True):
        sub_id = st.selectbox("Subcategory", list(sub_names), format_func=sub_names.get, index=None)
        op_date = st.date_input("Date")
        amount = st.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        if st.form_submit_button("Save"):
            show_result(
                run(store.create_operation(sub_id, format_date_local(op_date), to_minor_units(amount))),
                "Operation added",
            )

elif menu == "🗂 Categories":
    st.title("🗂 Categories")
    with st.form("category_form", clear_on_submit=True):
        name = st.text_input("New category")
        if st.form_submit_button("Add category"):
            show_result(run(store.create_category(name)), "Category added")

    for cat in sorted(store.categories, key=lambda c: c.name.casefold()):
        with st.expander(cat.name):
            for sub in store.subcategories_of(cat.id):
                c1, c2 = st.columns([4, 1])
                c1.write(f"{sub.name} ({len(store.operations_of(sub.id))} operations)")
                if c2.button("🗑", key=f"del_sub_{sub.id}"):
                    show_result(run(store.remove_subcategory(sub.id)), "Subcategory removed")
            sub_name = st.text_input("New subcategory", key=f"new_sub_{cat.id}")
            if st.button("Add subcategory", key=f"add_sub_{cat.id}"):
                show_result(run(store.create_subcategory(cat.id, sub_name)), "Subcategory added")
            if st.button("Delete category", key=f"del_cat_{cat.id}"):
                show_result(run(store.remove_category(cat.id)), "Category removed")
