"""Streamlit front-end for the shareholder snapshot tracker."""
from __future__ import annotations

import asyncio
from datetime import date
from typing import Sequence

import pandas as pd
import streamlit as st

from shareholder_tracker import IngestSnapshotUseCase, ManageGroupsUseCase, RankMoversUseCase, build_context
from shareholder_tracker.application.dto import IngestRequest, RankRequest
from shareholder_tracker.application.use_cases import ClearStoreUseCase
from shareholder_tracker.domain.analytics import (
    EntityFilter,
    RankingMode,
    behavior_counts,
    compare_two_points,
    positions_between,
    summarize,
)
from shareholder_tracker.domain.errors import CategoryRequiredError, GroupSaveError, ShareholderTrackerError
from shareholder_tracker.domain.grouping import group_by_fund
from shareholder_tracker.domain.identity import find_name_collisions
from shareholder_tracker.domain.manual_groups import group_history
from shareholder_tracker.domain.models import EntitySnapshot, LongitudinalStore
from shareholder_tracker.domain.windows import TimeWindow, WindowPreset
from shareholder_tracker.presentation.export import history_to_rows, ranking_to_rows, render_csv, render_html


st.set_page_config(page_title="Shareholder Tracker", layout="wide")
st.title("Shareholder Tracking Tool")

context = build_context()


def load_store() -> LongitudinalStore:
    return asyncio.run(context.repository.load())


def entities_to_dataframe(entities: Sequence[EntitySnapshot], date_keys: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame(history_to_rows(entities, date_keys))


if "view" not in st.session_state:
    st.session_state["view"] = "upload"
if "pending_group" not in st.session_state:
    st.session_state["pending_group"] = None


store = load_store()
date_keys = store.date_keys()

with st.sidebar:
    st.header("Store")
    st.caption(f"{len(store)} holders across {len(date_keys)} snapshot dates")
    for upload in store.uploads:
        st.write(f"{upload.date_key}: {upload.file_name} ({upload.record_count} rows)")
    if st.button("Clear all data", key="clear_store_btn"):
        asyncio.run(ClearStoreUseCase(context).execute())
        st.success("Store cleared")
        st.rerun()

tabs = st.tabs(["Upload", "Holdings", "Movers", "Behavior", "Groups"])

with tabs[0]:
    uploads = st.file_uploader(
        "Upload shareholder snapshots",
        type=["xls", "xlsx", "csv"],
        accept_multiple_files=True,
    )
    ingest_btn = st.button("Ingest", disabled=not uploads)
    if ingest_btn and uploads:
        use_case = IngestSnapshotUseCase(context)
        for upload in uploads:
            with st.spinner(f"Processing {upload.name}..."):
                try:
                    response = asyncio.run(use_case.execute(IngestRequest(upload.read(), upload.name)))
                except ShareholderTrackerError as exc:
                    st.error(f"{upload.name}: {exc}")
                    continue
            st.success(f"{upload.name}: {len(response.snapshot.records)} holders as on {response.snapshot.date_key}")
        st.rerun()

with tabs[1]:
    if not len(store):
        st.info("No data yet. Upload a snapshot first.")
    else:
        summary = summarize(list(store.entities))
        col1, col2, col3 = st.columns(3)
        col1.metric("Holders", summary.total_entities)
        col2.metric("Shares on latest date", f"{summary.total_shares:,}")
        col3.metric("Change since previous", f"{summary.net_change:+,}")

        col_f1, col_f2, col_f3 = st.columns([1, 2, 1])
        with col_f1:
            category = st.selectbox("Category", ["all", *store.categories()], key="holdings_category")
        with col_f2:
            search = st.text_input("Search name/description", key="holdings_search")
        with col_f3:
            grouped = st.checkbox("Group by fund", key="holdings_grouped")

        entities = group_by_fund(store.entities) if grouped else list(store.entities)
        filtered = EntityFilter(category=category, search=search).apply(entities)
        st.caption(f"Showing {len(filtered)} of {len(entities)}")
        st.dataframe(entities_to_dataframe(filtered, date_keys), use_container_width=True)

        rows = history_to_rows(filtered, date_keys)
        st.download_button(
            "Download CSV",
            data=render_csv(rows),
            file_name=f"shareholders_{date.today().isoformat()}.csv",
            mime="text/csv",
        )
        st.download_button(
            "Download HTML",
            data=render_html(rows).encode("utf-8"),
            file_name=f"shareholders_{date.today().isoformat()}.html",
            mime="text/html",
        )

        collisions = find_name_collisions(store.entities)
        if collisions:
            with st.expander(f"{len(collisions)} names appear under more than one key"):
                st.dataframe(
                    pd.DataFrame([{"name": name, "keys": ", ".join(keys)} for name, keys in sorted(collisions.items())])
                )

with tabs[2]:
    if len(date_keys) < 2:
        st.info("Upload at least two snapshots to rank movers.")
    else:
        col1, col2, col3 = st.columns(3)
        with col1:
            preset = WindowPreset(
                st.selectbox("Window", [p.value for p in WindowPreset], index=len(WindowPreset) - 1)
            )
        with col2:
            mode = RankingMode(st.radio("Rank", [m.value for m in RankingMode], index=1, horizontal=True))
        with col3:
            grouped = st.checkbox("Group by fund", key="movers_grouped")
            gate = st.checkbox("Only active holders", value=True, key="movers_gate")

        window = TimeWindow(preset=preset)
        if preset == WindowPreset.CUSTOM:
            col_s, col_e = st.columns(2)
            window.start_date = col_s.date_input("Start", value=date.fromisoformat(date_keys[0]))
            window.end_date = col_e.date_input("End", value=date.fromisoformat(date_keys[-1]))
        elif preset == WindowPreset.QUARTER:
            col_y, col_q = st.columns(2)
            latest = date.fromisoformat(date_keys[-1])
            window.year = int(col_y.number_input("Year", value=latest.year, step=1))
            window.quarter = int(col_q.selectbox("Quarter", [1, 2, 3, 4], index=(latest.month - 1) // 3))

        category = st.selectbox("Category", ["all", *store.categories()], key="movers_category")
        request = RankRequest(
            window=window,
            mode=mode,
            entity_filter=EntityFilter(category=category),
            group_by_fund=grouped,
            apply_activity_gate=gate,
        )
        response = asyncio.run(RankMoversUseCase(context).execute(request))
        result = response.result
        if result.ranked:
            st.caption(f"{window.label}: {result.start_key} to {result.end_key}")
        else:
            st.warning(f"{window.label} does not cover two snapshots; showing unranked holders.")
        ranking_rows = ranking_to_rows(result)
        st.dataframe(pd.DataFrame(ranking_rows), use_container_width=True)
        st.download_button(
            "Download ranking CSV",
            data=render_csv(ranking_rows),
            file_name=f"movers_{mode.value}.csv",
            mime="text/csv",
        )

with tabs[3]:
    if len(date_keys) < 2:
        st.info("Upload at least two snapshots to compare behavior.")
    else:
        col1, col2 = st.columns(2)
        with col1:
            first = st.selectbox("Earlier snapshot", date_keys, index=len(date_keys) - 2, key="behavior_first")
        with col2:
            second = st.selectbox("Later snapshot", date_keys, index=len(date_keys) - 1, key="behavior_second")
        entities = list(store.entities)
        first_index = date_keys.index(first)
        before_first = date_keys[first_index - 1] if first_index else first
        month1 = positions_between(entities, before_first, first)
        month2 = positions_between(entities, first, second)
        comparisons = compare_two_points(month1, month2, context.settings.behavior_threshold)
        counts = behavior_counts(comparisons)
        metric_cols = st.columns(len(counts))
        for col, (behavior, count) in zip(metric_cols, counts.items()):
            col.metric(behavior.value.title(), count)
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "name": item.name,
                        "behavior": item.behavior.value,
                        "trend_change": item.trend_change,
                        "fund_group": item.fund_group,
                    }
                    for item in comparisons
                ]
            ),
            use_container_width=True,
        )

with tabs[4]:
    groups_use_case = ManageGroupsUseCase(context)
    options = {f"{e.name} ({e.canonical_key})": e.canonical_key for e in store.entities}

    st.subheader("Manual groups")
    group_name = st.text_input("Group name", key="group_name")
    selected = st.multiselect("Members", list(options.keys()), key="group_members")
    pending = st.session_state.get("pending_group")
    chosen_category = None
    if pending:
        chosen_category = st.selectbox("Members span several categories; pick one", pending, key="group_category")

    if st.button("Save group", key="save_group_btn"):
        try:
            saved = asyncio.run(
                groups_use_case.save(group_name, [options[label] for label in selected], chosen_category)
            )
        except CategoryRequiredError as exc:
            st.session_state["pending_group"] = exc.categories
            st.rerun()
        except GroupSaveError as exc:
            st.error(str(exc))
        else:
            st.session_state["pending_group"] = None
            st.success(f"Saved {saved.name}")
            st.rerun()

    for group in groups_use_case.list_groups():
        with st.expander(f"{group.name} ({len(group.members)} members, {group.category or 'no category'})"):
            history = group_history(group, store.entities)
            st.dataframe(pd.DataFrame([{"date": key, "shares": value} for key, value in history.items()]))
            if st.button("Delete", key=f"delete_group_{group.id}"):
                groups_use_case.delete(group.id)
                st.rerun()
