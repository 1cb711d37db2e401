import asyncio
import json
from io import StringIO
from typing import List, Optional

import pandas as pd
import plotly.express as px
import streamlit as st

from agents.insight_agent import extract_insights, generate_insights, natural_message
from agents.planner_agent import plan_and_analyze
from core.config import AnalysisSettings, get_api_key, get_client
from core.knowledge import DEFAULT_FOCUS_PLANS
from core.logging_config import setup_logging
from core.models import AnalysisError, Findings, NumericFieldStats
from tools.data_analysis import SAMPLE_DATA_CSV, records_from_frame
from tools.semantics import infer_field_meanings

st.set_page_config(
    page_title="Dynamic Insight Engine",
    page_icon="📊",
    layout="wide",
)


def load_uploaded_file(file) -> pd.DataFrame:
    name = file.name.lower()
    if name.endswith(".json"):
        raw = json.load(file)
        if isinstance(raw, dict):
            raw = raw.get("attributes", [])
        return pd.DataFrame(raw)
    return pd.read_csv(file)


def load_sample_df() -> pd.DataFrame:
    return pd.read_csv(StringIO(SAMPLE_DATA_CSV))


def _numeric_fields(findings: Findings) -> List[str]:
    return [name for name, stats in findings.field_stats.items() if isinstance(stats, NumericFieldStats)]


def render_field_types_tab(container, findings: Findings):
    with container:
        rows = [
            {
                "field": name,
                "type": ftype.kind,
                "identifier": ftype.is_identifier,
                "boolean": ftype.is_boolean,
                "temporal": ftype.is_temporal,
                "unique": ftype.unique_count,
                "observed": ftype.total_count,
                "sparsity": ftype.sparsity,
                "completeness": findings.data_quality.completeness.get(name, 0.0),
            }
            for name, ftype in findings.field_types.items()
        ]
        st.dataframe(pd.DataFrame(rows))


def render_statistics_tab(container, findings: Findings):
    with container:
        numeric = _numeric_fields(findings)
        if numeric:
            st.subheader("Numeric Summaries")
            st.dataframe(pd.DataFrame({name: vars(findings.field_stats[name]) for name in numeric}).T)
        for name, stats in findings.field_stats.items():
            if name in numeric:
                continue
            with st.expander(f"{name} distribution (mode: {stats.most_common})", expanded=False):
                freq = pd.DataFrame(list(stats.distribution.items()), columns=[name, "count"])
                st.plotly_chart(px.bar(freq, x=name, y="count", title=f"{name} distribution"), use_container_width=True)


def render_metrics_tab(container, findings: Findings):
    with container:
        if not findings.metrics:
            st.info("No metrics were requested.")
            return
        for key, entry in findings.metrics.items():
            if not isinstance(entry, dict):
                st.metric(key, f"{entry:.3f}")
                continue
            if "error" in entry:
                st.warning(f"{key}: {entry['error']}")
                continue
            cols = st.columns(2)
            if "total" in entry:
                cols[0].metric(f"Total {key}", entry["total"])
            if "average" in entry:
                cols[1].metric(f"Average {key}", f"{entry['average']:.2f}")
            if entry.get("trend"):
                fig = px.line(pd.DataFrame(entry["trend"]), x="date", y="value", title=f"{key} Trend")
                st.plotly_chart(fig, use_container_width=True)


def render_relationships_tab(container, findings: Findings):
    with container:
        if findings.relationships:
            rel = pd.DataFrame(
                [{"pair": f"{r.field1} vs {r.field2}", "strength": r.strength} for r in findings.relationships]
            )
            st.plotly_chart(
                px.bar(rel, x="pair", y="strength", title="Correlated Field Pairs", range_y=[-1, 1]),
                use_container_width=True,
            )
        else:
            st.info("No strongly correlated field pairs.")
        if findings.patterns:
            st.subheader("Trends Over Record Order")
            for p in findings.patterns:
                st.write(f"- {p.field}: {p.direction} (strength {p.strength:.2f})")


def render_anomaly_tab(container, findings: Findings):
    with container:
        st.metric("Flagged Values (>2σ)", len(findings.anomalies))
        if not findings.anomalies:
            st.success("No significant anomalies detected.")
            return
        df = pd.DataFrame([vars(a) for a in findings.anomalies])
        st.dataframe(df)
        fig = px.scatter(df, x="record_index", y="value", color="field", size="severity", title="Anomaly Highlight")
        st.plotly_chart(fig, use_container_width=True)


def render_context_tab(container, findings: Findings, records):
    with container:
        ctx = findings.business_context
        c1, c2, c3 = st.columns(3)
        c1.metric("Domain", ctx.domain)
        c2.metric("Primary Metrics", len(ctx.primary_metrics))
        c3.metric("Categories", len(ctx.categories))
        st.write(
            {"primary_metrics": ctx.primary_metrics, "identifiers": ctx.identifiers, "categories": ctx.categories}
        )
        meanings = infer_field_meanings(list(findings.field_types), records)
        if isinstance(meanings, AnalysisError):
            st.info(meanings.error)
            return
        st.dataframe(pd.DataFrame([vars(m) for m in meanings.values()]))


def main():
    settings = AnalysisSettings.from_env()
    setup_logging(settings.log_level)

    st.title("Dynamic Insight Engine")
    st.caption(
        "Upload a flat dataset, choose focus areas, and get field typing, statistics, "
        "trends, correlations and anomalies. Gemini can plan metrics and narrate the findings."
    )

    # --- API Key ---
    api_key = st.text_input(
        "Google API Key (optional; enables Gemini planning and narratives)",
        value=get_api_key(allow_missing=True),
        type="password",
        placeholder="Enter your Google API Key",
    )
    client = None
    if api_key:
        try:
            client = get_client(api_key)
        except Exception as exc:
            st.error(f"Failed to initialize Gemini client: {exc}")
            return

    # --- Data Source ---
    st.sidebar.header("Data Source")
    uploaded = st.sidebar.file_uploader("Upload CSV or JSON records", type=["csv", "json"])
    use_sample = st.sidebar.checkbox("Use sample incident data", value=uploaded is None)

    df: Optional[pd.DataFrame] = None
    if uploaded:
        df = load_uploaded_file(uploaded)
    elif use_sample:
        df = load_sample_df()
    if df is None:
        st.info("Upload a dataset or tick 'Use sample incident data' to begin.")
        return
    records = records_from_frame(df)

    # --- Analysis Options ---
    st.sidebar.header("Analysis")
    user_prompt = st.sidebar.text_area("What do you want to know?", "Analyze the trend and total of resolved tickets.")
    focus_areas = st.sidebar.multiselect("Focus areas", sorted(DEFAULT_FOCUS_PLANS), default=["total", "trend"])
    target_fields = st.sidebar.multiselect("Target fields", [str(c) for c in df.columns])
    depth = st.sidebar.radio("Depth", ["detailed", "basic"], horizontal=True)

    try:
        result = asyncio.run(plan_and_analyze(records, focus_areas, user_prompt, target_fields, depth, client, settings))
    except Exception as exc:  # pragma: no cover - surfaced to UI
        st.error(f"Analysis failed: {exc}")
        return
    if not result.ok:
        st.error(result.message)
        return
    findings: Findings = result.payload
    st.success(result.message)

    insight = extract_insights(user_prompt, findings.metrics)
    if not isinstance(insight, AnalysisError):
        st.markdown(natural_message(insight))

    tabs = st.tabs(["Field Types", "Statistics", "Metrics", "Relationships & Trends", "Anomalies", "Business Context"])
    render_field_types_tab(tabs[0], findings)
    render_statistics_tab(tabs[1], findings)
    render_metrics_tab(tabs[2], findings)
    render_relationships_tab(tabs[3], findings)
    render_anomaly_tab(tabs[4], findings)
    render_context_tab(tabs[5], findings, records)

    if st.button("Generate Narrative with Gemini", disabled=client is None):
        with st.status("Running InsightAgent...", expanded=True) as status:
            try:
                narrative = generate_insights(client, findings, user_prompt, settings)
                status.update(label="Narrative ready", state="complete")
            except Exception as exc:  # pragma: no cover
                status.update(label="Agent run failed", state="error")
                st.error(f"Narrative generation failed: {exc}")
                return
        st.markdown(narrative)


if __name__ == "__main__":
    main()
