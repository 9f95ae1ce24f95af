# apps/codebench_ui.py
from __future__ import annotations

import json
from pathlib import Path

import streamlit as st
import yaml

from codebench.app import SessionWiring, build_wiring
from codebench.config.settings import load_settings
from codebench.data.pattern import create_pattern
from codebench.data.pattern_file import dump_patterns
from codebench.errors import CodebenchError, CommitNotConfirmed
from codebench.events import LoggingEventSink, MemoryEventSink


def _safe_json_dumps(obj: object) -> str:
    try:
        return json.dumps(obj, ensure_ascii=False, indent=2, default=str)
    except (TypeError, ValueError):
        return json.dumps({"error": "Failed to JSON-serialize object"}, indent=2)


def _wiring(*, config_path: str, patterns_path: str) -> tuple[SessionWiring, MemoryEventSink]:
    """Keeps one store/ledger per (config, patterns) pair across Streamlit reruns."""
    key = f"wiring::{config_path}::{patterns_path}"
    if key not in st.session_state:
        settings = load_settings(config_path=config_path or None)
        events = MemoryEventSink(forward=LoggingEventSink())
        path = patterns_path.strip() or None
        if path is not None and not Path(path).exists():
            path = None
        st.session_state[key] = (build_wiring(settings, patterns_path=path, events=events), events)
    return st.session_state[key]


def _render_patterns_panel(*, w: SessionWiring, patterns_path: str) -> None:
    st.subheader("Pattern store")
    st.caption(f"count={w.store.count} capacity={w.store.capacity}")

    rows = [p.to_dict() for p in w.store.snapshot()]
    if rows:
        st.code(yaml.safe_dump(rows, sort_keys=False, allow_unicode=True), language="yaml")
    else:
        st.info("The store is empty; suggestions will use the placeholder template.")

    with st.form(key="add_pattern"):
        snippet = st.text_area("snippet", height=120)
        language = st.text_input("language", value="python")
        complexity = st.number_input("complexity", value=0.0, step=0.5)
        analyze = st.checkbox("analyze complexity after adding")
        if st.form_submit_button("Add pattern"):
            try:
                pattern = create_pattern(snippet, language, float(complexity))
                w.store.add(pattern)
                if analyze:
                    w.store.analyze_complexity(pattern)
                if patterns_path.strip():
                    dump_patterns(w.store, patterns_path.strip())
                st.success("Pattern added.")
            except CodebenchError as e:
                st.error(f"Cannot add pattern: {e}")


def _render_session_panel(*, w: SessionWiring, events: MemoryEventSink) -> None:
    st.subheader("Session")

    request = st.text_area("request", value="Create a function to sort an array", height=80)
    if st.button("Run session"):
        events.clear()
        try:
            result = w.orchestrator.run_session(request)
            st.session_state["last_result"] = result.to_dict()
            st.success("Session committed.")
        except CommitNotConfirmed as e:
            st.session_state["last_result"] = {"status": "COMMIT_NOT_CONFIRMED", "error": str(e), "data": e.data}
            st.warning(f"Commit not confirmed: {e}")
        except CodebenchError as e:
            st.session_state["last_result"] = {"status": "ABORTED", "error": str(e), "data": e.data}
            st.error(f"Session aborted: {e}")

    if "last_result" in st.session_state:
        last = st.session_state["last_result"]
        if "initial_suggestion" in last:
            st.markdown("**Initial suggestion**")
            st.code(last["initial_suggestion"])
            st.markdown("**Final suggestion**")
            st.code(last["final_suggestion"])
        st.code(_safe_json_dumps(last), language="json")

    with st.expander("Event trail", expanded=False):
        st.code(_safe_json_dumps([e.to_dict() for e in events.events]), language="json")


def _render_ledger_panel(*, w: SessionWiring) -> None:
    st.subheader("Verify")

    query = st.text_input("entry id, content hash or content")
    if st.button("Verify") and query.strip():
        try:
            proof = w.ledger.verify(query.strip())
            st.code(_safe_json_dumps(proof.to_dict()), language="json")
        except CodebenchError as e:
            st.error(f"Verify failed: {e}")


def main() -> None:
    st.set_page_config(page_title="codebench", layout="wide")
    st.title("codebench (request → suggestion → refinement → ledger)")

    with st.sidebar:
        st.header("Configuration")
        config_path = st.text_input("config file (optional)", value="")
        patterns_path = st.text_input("pattern file (optional)", value="patterns.yaml")

    try:
        w, events = _wiring(config_path=config_path, patterns_path=patterns_path)
    except CodebenchError as e:
        st.error(f"Cannot build session wiring: {e}")
        return

    tab1, tab2, tab3 = st.tabs(["Session", "Patterns", "Ledger"])
    with tab1:
        _render_session_panel(w=w, events=events)
    with tab2:
        _render_patterns_panel(w=w, patterns_path=patterns_path)
    with tab3:
        _render_ledger_panel(w=w)


if __name__ == "__main__":
    main()
