"""Streamlit UI for AutoCV."""
from __future__ import annotations

import dataclasses
import sys
from pathlib import Path

import streamlit as st

ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(ROOT))

from autocv.assistant import GREETING, OFFLINE_REPLY, AssistantSession
from autocv.config import api_key, chat_model, ensure_dirs, generation_model, load_env_file, save_env_file
from autocv.dashboard import best_score, filter_records, status_counts
from autocv.directives import (
    DASHBOARD_LABELS,
    DirectiveResolutionError,
    DownloadDirective,
    artifact_file,
    iter_segments,
    resolve,
)
from autocv.llm import JobPostingImage
from autocv.log import get_logger
from autocv.models import (
    METRIC_FIELDS,
    ApplicationRecord,
    ApplicationStatus,
    Persona,
    ProgressStep,
    validate_persona,
)
from autocv.scoring import score_band
from autocv.store import FileRecordStore

log = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────

# Checklist shown while a run is in flight, in the order events arrive.
STEP_CHECKLIST: list[tuple[ProgressStep, str]] = [
    (ProgressStep.ANALYZING_IMAGE, "Reading Job Description..."),
    (ProgressStep.GENERATING_CL, "Writing Cover Letter..."),
    (ProgressStep.GENERATING_EMAILS, "Drafting Emails to Recruiter & HM..."),
    (ProgressStep.GENERATING_DM, "Composing LinkedIn Message..."),
    (ProgressStep.CALCULATING_METRICS, "Calculating Match Score..."),
]

METRIC_LABELS: dict[str, str] = {
    "skillsMatch": "Skills Match",
    "roleSimilarities": "Role Similarity",
    "remotePolicy": "Remote Policy",
    "rndFocus": "R&D Focus",
    "startupBonus": "Startup Bonus",
    "automationBonus": "Automation Bonus",
}

ARTIFACT_TITLES: dict[str, str] = {
    "resumeDoc": "Resume",
    "coverLetter": "Cover Letter",
    "recruiterEmail": "Recruiter Email",
    "hmEmail": "Hiring Manager Email",
    "dmMessage": "LinkedIn DM",
}

_BAND_COLOURS: dict[str, str] = {
    "great": "#27ae60",
    "good": "#2980b9",
    "fair": "#f39c12",
    "low": "#e74c3c",
}

ANALYSIS_FAILED = "Analysis failed. Please try again. Ensure your API Key is valid."
UPLOAD_EXTENSIONS = ["png", "jpg", "jpeg", "webp"]

_GLASS_CSS = """
<style>
[data-testid="stAppViewContainer"] {
    background: linear-gradient(135deg, #fff8e1 0%, #f3e5f5 45%, #e0f2f1 100%);
}
[data-testid="stSidebar"] {
    background: rgba(255,255,255,0.55);
    backdrop-filter: blur(16px);
    -webkit-backdrop-filter: blur(16px);
    border-right: 1px solid rgba(255,255,255,0.3);
}
.block-container {
    padding-top: 2rem;
}
[data-testid="stMetric"] {
    background: rgba(255,255,255,0.6);
    padding: 0.6rem 0.9rem;
    border-radius: 12px;
    border: 1px solid rgba(255,255,255,0.4);
    box-shadow: 0 4px 16px rgba(0,0,0,0.06);
}
[data-testid="stForm"],
[data-testid="stExpander"] {
    background: rgba(255,255,255,0.5);
    backdrop-filter: blur(10px);
    -webkit-backdrop-filter: blur(10px);
    border-radius: 12px;
    border: 1px solid rgba(255,255,255,0.35);
}
.stButton > button[kind="primary"] {
    border-radius: 8px;
    font-weight: 600;
}
.score-badge {
    display: inline-block;
    padding: 0.2rem 0.7rem;
    border-radius: 999px;
    color: white;
    font-weight: 700;
}
</style>
"""

# ── Helpers ──────────────────────────────────────────────────────────────


@st.cache_resource
def _store() -> FileRecordStore:
    ensure_dirs()
    return FileRecordStore()


def _status() -> dict[str, bool]:
    return {
        "api_key": bool(api_key()),
        "persona": not validate_persona(_store().get_persona()),
    }


def _check(label: str, ok: bool) -> str:
    return f"{'✅' if ok else '⬜'} {label}"


def _score_badge(total: float) -> str:
    colour = _BAND_COLOURS[score_band(total)]
    return f'<span class="score-badge" style="background:{colour}">{total:g}</span>'


# ── Page: Persona ────────────────────────────────────────────────────────


def page_persona() -> None:
    st.header("Persona")
    st.caption("Every generated document is grounded on these details.")

    persona = _store().get_persona()

    with st.form("persona_form"):
        c1, c2 = st.columns(2)
        with c1:
            name = st.text_input("Full name *", value=persona.name)
            phone = st.text_input("Phone", value=persona.phone)
            website = st.text_input("Website", value=persona.website)
        with c2:
            email = st.text_input("Email *", value=persona.email)
            linkedin = st.text_input("LinkedIn", value=persona.linkedin)
            github = st.text_input("GitHub", value=persona.github)
        extra_info = st.text_area(
            "Background / experience",
            value=persona.extra_info,
            height=260,
            help="Paste your CV text, roles, projects and achievements.",
        )
        save = st.form_submit_button("Save Persona", type="primary", use_container_width=True)

    if save:
        updated = Persona(
            name=name.strip(),
            email=email.strip(),
            phone=phone.strip(),
            linkedin=linkedin.strip(),
            website=website.strip(),
            github=github.strip(),
            extra_info=extra_info.strip(),
        )
        errors = validate_persona(updated)
        if errors:
            for e in errors:
                st.error(e)
            return
        _store().save_persona(updated)
        st.success("Persona saved.")


# ── Page: New Application ────────────────────────────────────────────────


def page_new_application() -> None:
    st.header("New Application")
    st.caption("Upload a screenshot of a job posting to generate your application package.")

    uploaded = st.file_uploader("Job posting screenshot", type=UPLOAD_EXTENSIONS)
    if uploaded is not None:
        st.image(uploaded, use_container_width=True)

    if not st.button("Generate Application", type="primary", use_container_width=True):
        return

    persona = _store().get_persona()
    errors = validate_persona(persona)
    if errors:
        for e in errors:
            st.error(e)
        return
    if uploaded is None:
        st.error("Please upload a job posting screenshot first.")
        return

    from autocv.workflow import AnalysisError, generate

    image = JobPostingImage(data=uploaded.getvalue(), mime_type=uploaded.type or "image/png")
    order = [step for step, _ in STEP_CHECKLIST]
    labels = dict(STEP_CHECKLIST)

    with st.status("Generating application…", expanded=True) as sw:

        def on_progress(step: ProgressStep) -> None:
            if step in labels:
                sw.update(label=labels[step])
                done = order.index(step)
                sw.write(" · ".join(
                    ("✅ " if i < done else "⏳ ") + labels[s] for i, s in enumerate(order[: done + 1])
                ))

        try:
            record = generate(image, persona, on_progress)
        except AnalysisError as exc:
            log.error("Generation from upload failed: %s", exc)
            sw.update(label="Analysis failed", state="error")
            st.error(ANALYSIS_FAILED)
            return

        _store().save_application(record)
        sw.update(label="Application ready!", state="complete")

    st.success(f"Saved application for **{record.company_name}** with match score {record.metrics.total_score:g}.")
    st.info("Open the **Dashboard** to download your documents.")


# ── Page: Dashboard ──────────────────────────────────────────────────────


def _render_record(record: ApplicationRecord) -> None:
    st.markdown(
        f"**{record.company_name}** &nbsp; {_score_badge(record.metrics.total_score)}",
        unsafe_allow_html=True,
    )
    st.caption(f"{record.date_created:%Y-%m-%d %H:%M} UTC · {record.status.value}")
    st.write(record.job_summary)

    cols = st.columns(len(METRIC_FIELDS))
    scores = record.metrics.sub_scores()
    for col, (key, ceiling) in zip(cols, METRIC_FIELDS):
        col.metric(METRIC_LABELS[key], f"{scores[key]:g}/{ceiling}")

    st.markdown("**Downloads**")
    keys = [k for k in DASHBOARD_LABELS if record.artifacts.get(k)]
    dl_cols = st.columns(max(len(keys), 1))
    for col, key in zip(dl_cols, keys):
        f = artifact_file(record, key, DASHBOARD_LABELS[key])
        col.download_button(
            ARTIFACT_TITLES.get(key, "Resume JSON"),
            data=f.content,
            file_name=f.filename,
            mime=f.mime_type,
            key=f"dl_{record.id}_{key}",
            use_container_width=True,
        )

    for key, title in ARTIFACT_TITLES.items():
        content = record.artifacts.get(key)
        if content:
            with st.expander(title):
                st.markdown(content)

    c1, c2 = st.columns([3, 1])
    statuses = list(ApplicationStatus)
    new_status = c1.selectbox(
        "Status",
        statuses,
        index=statuses.index(record.status),
        format_func=lambda s: s.value,
        key=f"status_{record.id}",
    )
    if new_status is not record.status:
        _store().save_application(dataclasses.replace(record, status=new_status))
        st.rerun()

    confirm_key = f"confirm_delete_{record.id}"
    if st.session_state.get(confirm_key):
        c2.warning("Delete this application?")
        if c2.button("Yes, delete", key=f"yes_{record.id}", type="primary"):
            _store().delete_application(record.id)
            st.session_state.pop(confirm_key, None)
            st.rerun()
        if c2.button("Cancel", key=f"no_{record.id}"):
            st.session_state.pop(confirm_key, None)
            st.rerun()
    elif c2.button("🗑️ Delete", key=f"del_{record.id}", use_container_width=True):
        st.session_state[confirm_key] = True
        st.rerun()


def page_dashboard() -> None:
    st.header("Dashboard")

    records = _store().list_applications()
    if not records:
        st.info("No applications yet. Create one on the **New Application** page.")
        return

    c1, c2, c3 = st.columns(3)
    c1.metric("Applications", len(records))
    c2.metric("Applied", status_counts(records)[ApplicationStatus.APPLIED])
    c3.metric("Best match", f"{best_score(records):g}")

    import pandas as pd

    df = pd.DataFrame(
        [
            {
                "Company": r.company_name,
                "Created": r.date_created,
                "Status": r.status.value,
                "Score": r.metrics.total_score,
            }
            for r in records
        ]
    )
    with st.expander("Summary table"):
        st.dataframe(
            df,
            use_container_width=True,
            column_config={
                "Score": st.column_config.ProgressColumn("Score", min_value=0, max_value=115, format="%d"),
            },
            hide_index=True,
        )

    st.divider()
    query = st.text_input("Search by company", placeholder="e.g. Acme")
    shown = filter_records(records, query)
    if not shown:
        st.info("No applications match your search.")
        return

    for record in shown:
        with st.container(border=True):
            _render_record(record)


# ── Page: Assistant ──────────────────────────────────────────────────────


def _render_reply(text: str, msg_index: int) -> None:
    for i, segment in enumerate(iter_segments(text)):
        if not isinstance(segment, DownloadDirective):
            st.markdown(segment)
            continue
        widget_key = f"directive_{msg_index}_{i}"
        try:
            f = resolve(segment, _store())
        except DirectiveResolutionError as exc:
            if st.button(f"⬇️ {segment.label}", key=widget_key):
                st.error(str(exc))
            continue
        st.download_button(
            f"⬇️ {segment.label}",
            data=f.content,
            file_name=f.filename,
            mime=f.mime_type,
            key=widget_key,
        )


def page_assistant() -> None:
    st.header("Assistant")

    if "assistant" not in st.session_state:
        st.session_state["assistant"] = AssistantSession()
        st.session_state["assistant_messages"] = [("assistant", GREETING)]
    session: AssistantSession = st.session_state["assistant"]
    messages: list[tuple[str, str]] = st.session_state["assistant_messages"]
    if not session.is_open:
        session.try_open(_store().list_applications())

    for idx, (role, text) in enumerate(messages):
        with st.chat_message(role):
            if role == "assistant":
                _render_reply(text, idx)
            else:
                st.markdown(text)

    prompt = st.chat_input("Ask about your applications…")
    if not prompt:
        return

    messages.append(("user", prompt))
    if session.is_open or session.try_open(_store().list_applications()):
        reply = session.ask(prompt)
    else:
        reply = OFFLINE_REPLY
    messages.append(("assistant", reply))
    st.rerun()


# ── Page: Settings ───────────────────────────────────────────────────────


def page_settings() -> None:
    st.header("Settings")

    env = load_env_file()
    with st.form("settings_form"):
        key = st.text_input(
            "Gemini API key",
            value=env.get("GEMINI_API_KEY", ""),
            type="password",
            help="Get a key at https://aistudio.google.com/apikey",
        )
        model = st.text_input("Generation model", value=env.get("GEMINI_MODEL", generation_model()))
        chat = st.text_input("Assistant model", value=env.get("GEMINI_CHAT_MODEL", chat_model()))
        save = st.form_submit_button("Save", type="primary", use_container_width=True)

    if save:
        path = save_env_file(
            {
                "GEMINI_API_KEY": key.strip(),
                "GEMINI_MODEL": model.strip(),
                "GEMINI_CHAT_MODEL": chat.strip(),
            }
        )
        # The assistant picks up the new model on its next session.
        st.session_state.pop("assistant", None)
        st.session_state.pop("assistant_messages", None)
        st.success(f"Saved to `{path.name}`.")


# ── Main ─────────────────────────────────────────────────────────────────


def _inject_css() -> None:
    st.markdown(_GLASS_CSS, unsafe_allow_html=True)


def _sidebar_status() -> None:
    with st.sidebar:
        st.divider()
        s = _status()
        st.markdown("**Status**")
        st.markdown(_check("Gemini API key", s["api_key"]))
        st.markdown(_check("Persona configured", s["persona"]))


def _wrap(page):
    def run() -> None:
        _inject_css()
        _sidebar_status()
        page()

    run.__name__ = page.__name__
    return run


pages = [
    st.Page(_wrap(page_new_application), title="New Application", icon="📸", url_path="new", default=True),
    st.Page(_wrap(page_dashboard), title="Dashboard", icon="📊", url_path="dashboard"),
    st.Page(_wrap(page_assistant), title="Assistant", icon="💬", url_path="assistant"),
    st.Page(_wrap(page_persona), title="Persona", icon="🙂", url_path="persona"),
    st.Page(_wrap(page_settings), title="Settings", icon="⚙️", url_path="settings"),
]

nav = st.navigation(pages)
nav.run()
