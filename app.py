import asyncio
import os
import tempfile
from pathlib import Path

import streamlit as st
from dotenv import load_dotenv

from cspcore.config import (
    get_request_timeout,
    get_stage_timeout,
    get_storage_dir,
    load_config,
)
from cspcore.errors import ConferenceExistsError, ConferenceNotFoundError
from cspcore.export import default_export_name, render_markdown, write_pdf
from cspcore.types import ReviewStatus, USER_ROLE
from llms.gateway import ReviewGateway
from pipelines import ReviewerApp

PAGES = ["Dashboard", "New Review", "Review", "Settings"]

EDITABLE_SECTIONS = [
    ("Desk Rejection Assessment", "desk_reject_assessment"),
    ("Summary", "summary"),
    ("Strengths", "strengths"),
    ("Weaknesses", "weaknesses"),
    ("Missing Related Work", "missing_related_work"),
    ("Questions for Rebuttal", "questions_for_rebuttal"),
    ("GenAI Analysis", "genai_analysis"),
]

RATING_LABELS = [
    ("Relevance", "relevance"),
    ("Novelty", "novelty"),
    ("Tech Quality", "technical_quality"),
    ("Presentation", "presentation"),
    ("Reproducibility", "reproducibility"),
    ("Confidence", "confidence"),
]

STATUS_BADGES = {
    ReviewStatus.COMPLETED: "🟢",
    ReviewStatus.DESK_REJECTED: "🔴",
    ReviewStatus.FAILED: "⚠️",
}


@st.cache_resource
def get_app() -> ReviewerApp:
    settings = load_config()
    gateway = ReviewGateway(
        timeout=get_stage_timeout(settings),
        request_timeout=get_request_timeout(settings),
    )
    return ReviewerApp(get_storage_dir(settings), gateway=gateway)


def open_review(submission_id: str):
    st.session_state["selected"] = submission_id
    st.session_state["page"] = "Review"


def render_dashboard(reviewer: ReviewerApp):
    col_title, col_new = st.columns([4, 1])
    col_title.header("Dashboard")
    col_new.button(
        "+ New Review",
        use_container_width=True,
        on_click=lambda: st.session_state.update(page="New Review"),
    )

    papers = reviewer.repository.list()
    if not papers:
        st.info("No reviews yet. Start a new one.")
        return

    cols = st.columns(3)
    for idx, paper in enumerate(papers):
        with cols[idx % 3].container(border=True):
            badge = STATUS_BADGES.get(paper.status, "🔵")
            st.caption(f"{paper.conference_id.upper()} · {badge} {paper.status.value.replace('_', ' ')}")
            st.markdown(f"**{paper.title}**")
            summary = (paper.result.summary if paper.result else None) or "Review in progress..."
            st.write(summary[:240])
            if paper.result and paper.result.final_decision:
                st.markdown(f"Decision: **{paper.result.final_decision}**")
            st.button("Open", key=f"open-{paper.id}", on_click=open_review, args=(paper.id,))


def render_new_review(reviewer: ReviewerApp):
    st.header("New Review")
    st.caption("Submit a paper PDF or text for AI-powered agentic review.")

    conferences = reviewer.config.conferences()
    title = st.text_input("Paper title")
    conference = st.selectbox(
        "Target conference",
        conferences,
        format_func=lambda c: f"{c.short_name} - {c.description}",
    )

    tab_paste, tab_upload = st.tabs(["Paste Text", "Upload PDF / Text"])
    with tab_paste:
        content = st.text_area("Paper text", height=260, placeholder="Paste the main text here...")
    with tab_upload:
        uploaded = st.file_uploader("Upload file", type=["pdf", "txt", "tex", "md"])
        st.caption("For PDFs, text is extracted locally from the first 10 pages.")

    ready = len(title) > 3 and (uploaded is not None or len(content) > 50)
    if not st.button("Start Review", type="primary", disabled=not ready):
        return

    with st.spinner("Running desk check and deep review..."):
        try:
            if uploaded is not None:
                suffix = Path(uploaded.name).suffix
                with tempfile.NamedTemporaryFile(suffix=suffix, delete=False) as tmp:
                    tmp.write(uploaded.getbuffer())
                try:
                    submission = asyncio.run(
                        reviewer.pipeline.start_review_from_file(title, tmp.name, conference.id)
                    )
                finally:
                    os.unlink(tmp.name)
            else:
                submission = asyncio.run(reviewer.pipeline.start_review(title, content, conference.id))
        except ConferenceNotFoundError as e:
            st.error(str(e))
            st.stop()

    st.session_state["pending_open"] = submission.id
    st.rerun()


def render_steps(status: ReviewStatus):
    labels = ["Desk Check", "Deep Review", "Decision"]
    order = [ReviewStatus.SCREENING, ReviewStatus.REVIEWING, ReviewStatus.COMPLETED]
    cols = st.columns(3)
    for col, label, step in zip(cols, labels, order):
        if status is ReviewStatus.FAILED:
            icon = "⚠️"
        elif status is ReviewStatus.DESK_REJECTED and step is ReviewStatus.SCREENING:
            icon = "❌"
        elif status is step:
            icon = "⏳" if step is not ReviewStatus.COMPLETED else "✅"
        elif status in order and order.index(status) > order.index(step):
            icon = "✅"
        else:
            icon = "○"
        col.markdown(f"{icon} {label}")


def render_review(reviewer: ReviewerApp):
    submission_id = st.session_state.get("selected")
    if not submission_id:
        st.info("Select a review on the dashboard.")
        return
    paper = next((p for p in reviewer.repository.list() if p.id == submission_id), None)
    if paper is None:
        st.error("Paper not found")
        return

    config = reviewer.config.get()
    st.header(paper.title)
    st.caption(f"{paper.conference_id.upper()} · {paper.status.value.replace('_', ' ')}")
    render_steps(paper.status)

    report_col, chat_col = st.columns([3, 2])
    result = paper.result

    with report_col:
        if paper.status is ReviewStatus.FAILED:
            st.error("The review could not be generated. Check your API key and model settings.")
        if result and result.is_desk_reject:
            st.error(f"Desk rejected: {result.desk_reject_reason}")

        if result and result.ratings:
            cols = st.columns(6)
            for col, (label, name) in zip(cols, RATING_LABELS):
                score = getattr(result.ratings, name)
                col.metric(label, f"{score}/10" if score > 0 else "-")
        if result and result.final_decision:
            st.subheader(f"Decision: {result.final_decision}")

        if result:
            profile = config.user_profile
            dl_md, dl_pdf = st.columns(2)
            dl_md.download_button(
                "Download Markdown",
                render_markdown(paper, profile),
                file_name=default_export_name(paper, "markdown"),
            )
            with tempfile.TemporaryDirectory() as tmpdir:
                pdf_path = write_pdf(paper, profile, Path(tmpdir) / "review.pdf")
                dl_pdf.download_button(
                    "Download PDF",
                    pdf_path.read_bytes(),
                    file_name=default_export_name(paper, "pdf"),
                    mime="application/pdf",
                )

            editable = paper.status is ReviewStatus.COMPLETED
            for label, name in EDITABLE_SECTIONS:
                value = getattr(result, name)
                if value is None or not editable:
                    continue
                with st.expander(label, expanded=name in ("summary", "weaknesses")):
                    edited = st.text_area(label, value, key=f"{paper.id}-{name}", height=180, label_visibility="collapsed")
                    save_col, learn_col = st.columns(2)
                    if save_col.button("Save", key=f"save-{paper.id}-{name}"):
                        reviewer.repository.edit_result(paper.id, **{name: edited})
                        st.success("Saved")
                    if learn_col.button("Learn Style", key=f"learn-{paper.id}-{name}"):
                        reviewer.config.learn_style(edited)
                        st.success("This review style has been added to your Knowledge Base settings!")

            if result.ethics_flag:
                st.markdown(f"**Ethics Review:** {result.ethics_flag}: {result.ethics_description or ''}")

    with chat_col:
        st.subheader("Rebuttal Simulation")
        completed = paper.status is ReviewStatus.COMPLETED
        if not completed:
            st.caption("Rebuttal becomes available after the review is decisioned.")
        elif not paper.rebuttal_chat:
            st.caption("The reviewer is ready. Defend your paper against the weaknesses mentioned in the report.")

        for message in paper.rebuttal_chat:
            with st.chat_message("user" if message.role == USER_ROLE else "assistant"):
                st.write(message.text)

        prompt = st.chat_input(
            "Type your rebuttal..." if completed else "Waiting...",
            disabled=not completed,
        )
        if prompt:
            with st.spinner("Reviewer is typing..."):
                asyncio.run(reviewer.rebuttal.append_user_turn(paper.id, prompt))
            st.rerun()


def render_settings(reviewer: ReviewerApp):
    st.header("Settings")
    config = reviewer.config.get()
    tab_general, tab_model, tab_knowledge = st.tabs(["General", "Model", "Knowledge Base"])

    with tab_general:
        st.subheader("Reviewer Persona")
        profile = config.user_profile
        name = st.text_input("Name", profile.name)
        role = st.text_input("Role", profile.role)
        affiliation = st.text_input("Affiliation", profile.affiliation)
        expertise = st.text_input("Expertise", profile.expertise, placeholder="e.g. Computer Vision, Reinforcement Learning")
        if st.button("Save persona"):
            reviewer.config.update_profile(name=name, role=role, affiliation=affiliation, expertise=expertise)
            st.success("Saved")

        st.subheader("Custom Conferences")
        new_name = st.text_input("Add new conference name...")
        if st.button("Add conference", disabled=not new_name):
            try:
                reviewer.config.add_conference(new_name)
                st.rerun()
            except (ConferenceExistsError, ValueError) as e:
                st.error(str(e))
        if not config.custom_conferences:
            st.caption("No custom conferences added yet.")
        for conf in config.custom_conferences:
            with st.expander(f"{conf.name} ({conf.id})"):
                rules = st.text_area("Screening rules", conf.custom_rules or "", key=f"rules-{conf.id}")
                save_col, remove_col = st.columns(2)
                if save_col.button("Save rules", key=f"save-rules-{conf.id}"):
                    reviewer.config.set_conference_rules(conf.id, rules)
                    st.success("Saved")
                if remove_col.button("Remove", key=f"remove-{conf.id}"):
                    reviewer.config.remove_conference(conf.id)
                    st.rerun()

    with tab_model:
        model = config.model_config
        model_name = st.text_input("Model", model.model_name)
        temperature = st.slider("Temperature", min_value=0.0, max_value=2.0, value=float(model.temperature), step=0.05)
        top_k = st.number_input("Top K", min_value=1, max_value=100, value=int(model.top_k))
        top_p = st.slider("Top P", min_value=0.0, max_value=1.0, value=float(model.top_p), step=0.05)
        api_key = st.text_input("API key (overrides OPENAI_API_KEY)", model.api_key or "", type="password")
        base_url = st.text_input("Custom Base URL", model.base_url or "")
        if st.button("Save model settings"):
            reviewer.config.update_model(
                model_name=model_name,
                temperature=temperature,
                top_k=int(top_k),
                top_p=top_p,
                api_key=api_key or None,
                base_url=base_url or None,
            )
            st.success("Saved")

    with tab_knowledge:
        st.subheader("Few-Shot Examples & Style Guide")
        st.caption(
            "The reviewer uses these examples to learn how you write reviews. "
            'Edit a generated review and click "Learn Style" to append it here.'
        )
        corpus = st.text_area("Style examples", config.few_shot_examples, height=380, label_visibility="collapsed")
        if st.button("Save style examples"):
            reviewer.config.set_style_examples(corpus)
            st.success("Saved")


load_dotenv()

st.set_page_config(page_title="OpenCSPaper Reviewer", page_icon="📝", layout="wide")

reviewer = get_app()

if "pending_open" in st.session_state:
    open_review(st.session_state.pop("pending_open"))

with st.sidebar:
    st.title("OpenCSPaper 📝")
    st.radio("Navigate", PAGES, key="page")

page = st.session_state.get("page", "Dashboard")
if page == "Dashboard":
    render_dashboard(reviewer)
elif page == "New Review":
    render_new_review(reviewer)
elif page == "Review":
    render_review(reviewer)
else:
    render_settings(reviewer)
