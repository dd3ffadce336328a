"""
LLMEdu - Interactive course on Large Language Models

Streamlit application shell around the progress core: shows where to
continue, module gating, achievements, and a settings page for reset.

Usage:
    streamlit run app.py
"""

import streamlit as st

from llmedu.classroom import (
    CurriculumLoader,
    PersistenceAdapter,
    SQLiteBackend,
    ProgressManager,
    Navigator,
    WalkthroughTracker,
    ThemePreferenceStore,
    reset_progress,
)
from llmedu.config import configure_logging, load_settings
from llmedu.schemas import ModuleStatus, ThemePreference
from llmedu.viewer import (
    get_progress_css,
    render_resume_card,
    resume_call_to_action,
    render_module_card,
    render_achievement_badges,
)


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

SETTINGS = load_settings()
configure_logging(SETTINGS.log_level)

st.set_page_config(
    page_title="LLMEdu",
    page_icon="🧠",
    layout="wide",
    initial_sidebar_state="expanded",
)


# -----------------------------------------------------------------------------
# Session State Initialization
# -----------------------------------------------------------------------------

def init_session_state():
    """Initialize session state variables."""
    if "adapter" not in st.session_state:
        st.session_state.adapter = PersistenceAdapter(SQLiteBackend(SETTINGS.storage_db))

    if "progress" not in st.session_state:
        catalog = CurriculumLoader(SETTINGS.curriculum_path).load()
        st.session_state.progress = ProgressManager(st.session_state.adapter, catalog)
        if not st.session_state.progress.has_active_session():
            st.session_state.progress.start_session()

    if "navigator" not in st.session_state:
        st.session_state.navigator = Navigator(st.session_state.progress)

    if "walkthrough" not in st.session_state:
        st.session_state.walkthrough = WalkthroughTracker(st.session_state.adapter)

    if "theme" not in st.session_state:
        st.session_state.theme = ThemePreferenceStore(st.session_state.adapter)

    if "view_mode" not in st.session_state:
        st.session_state.view_mode = "learn"  # learn, settings

    if "current_module_id" not in st.session_state:
        resume = st.session_state.navigator.get_resume_point()
        st.session_state.current_module_id = resume.module_id or 1


# -----------------------------------------------------------------------------
# Sidebar: Course Tree
# -----------------------------------------------------------------------------

def render_sidebar():
    """Render the sidebar with module list and progress."""
    st.sidebar.title("🧠 LLMEdu")

    nav = st.session_state.navigator
    progress = st.session_state.progress

    stats = progress.get_completion_stats()
    st.sidebar.markdown(
        f"**Progress:** {stats['completed']}/{stats['total_sections']} sections "
        f"({stats['completion_percent']}%)"
    )
    st.sidebar.progress(stats['completion_percent'] / 100)

    if progress.has_unsaved_changes:
        st.sidebar.warning("Progress could not be saved and will be lost when you leave.")

    if progress.has_active_session():
        if st.sidebar.button("End study session", use_container_width=True):
            progress.end_session()
            st.rerun()
    elif st.sidebar.button("Start study session", use_container_width=True):
        progress.start_session()
        st.rerun()

    st.sidebar.divider()

    view_mode = st.sidebar.radio(
        "Select view",
        ["Learn", "Settings"],
        index=["learn", "settings"].index(st.session_state.view_mode),
        horizontal=True,
        label_visibility="collapsed",
    )
    st.session_state.view_mode = view_mode.lower()

    st.sidebar.subheader("Modules")
    for nav_module in nav.get_navigation_tree():
        indicator = nav.get_status_indicator(nav_module.module_id)
        if st.sidebar.button(
            f"{indicator} {nav_module.title}",
            key=f"module_{nav_module.module_id}",
            disabled=nav_module.status == ModuleStatus.LOCKED,
            use_container_width=True,
        ):
            select_module(nav_module.module_id)


def select_module(module_id: int):
    """Select a module and record the visit."""
    st.session_state.current_module_id = module_id
    st.session_state.view_mode = "learn"
    st.session_state.progress.record_session(module_id)
    st.rerun()


# -----------------------------------------------------------------------------
# Main Content: Learn View
# -----------------------------------------------------------------------------

def render_walkthrough_prompt():
    """Show the onboarding hint until it is dismissed."""
    walkthrough = st.session_state.walkthrough
    if walkthrough.is_completed():
        return

    with st.container(border=True):
        st.markdown(
            "**Welcome!** Work through the modules in order. Each module unlocks "
            "once every section of the previous one is complete."
        )
        if st.button("Got it"):
            walkthrough.mark_completed()
            st.rerun()


def render_learn_view():
    """Render resume card and the selected module."""
    nav = st.session_state.navigator
    progress = st.session_state.progress

    render_walkthrough_prompt()

    st.markdown(get_progress_css(), unsafe_allow_html=True)
    resume = nav.get_resume_point()
    st.markdown(render_resume_card(resume), unsafe_allow_html=True)

    action = resume_call_to_action(resume)
    if action["module_id"] and st.button(action["label"], type="primary"):
        select_module(action["module_id"])

    achievements = progress.get_achievements()
    if achievements:
        st.markdown(render_achievement_badges(achievements, progress.catalog), unsafe_allow_html=True)

    st.divider()

    module_id = st.session_state.current_module_id
    tree = {m.module_id: m for m in nav.get_navigation_tree()}
    nav_module = tree.get(module_id)
    if nav_module is None:
        st.info("Select a module from the sidebar to begin.")
        return

    st.markdown(render_module_card(nav_module), unsafe_allow_html=True)
    if nav_module.status == ModuleStatus.LOCKED:
        st.info("Complete the previous module to unlock this one.")
        return

    for nav_section in nav_module.sections:
        section = nav_section.section
        col1, col2 = st.columns([8, 2])
        with col1:
            st.markdown(f"**{section.title}** - {section.description} ({section.estimated_minutes} min)")
        with col2:
            if nav_section.completed:
                st.success("Done")
            elif st.button("Complete", key=f"complete_{module_id}_{section.id}"):
                result = progress.mark_section_complete(module_id, section.id)
                if not result.persisted:
                    st.toast("Saved for this session only.")
                st.rerun()

    if nav_module.status != ModuleStatus.COMPLETED:
        if st.button("Mark module complete", key=f"complete_module_{module_id}"):
            result = progress.mark_module_complete(module_id)
            if not result.persisted:
                st.toast("Saved for this session only.")
            st.rerun()


# -----------------------------------------------------------------------------
# Settings View
# -----------------------------------------------------------------------------

def render_settings_view():
    """Render theme choice and reset controls."""
    st.title("Settings")

    theme_store = st.session_state.theme
    current = theme_store.get()
    options = [t.value for t in ThemePreference]
    choice = st.selectbox(
        "Theme",
        options,
        index=options.index(current.value) if current else None,
        placeholder="Choose a theme",
    )
    if theme_store.apply_choice(choice):
        st.toast(f"Theme set to {choice}.")

    st.divider()
    st.subheader("Reset progress")
    st.markdown("This removes all completed sections and achievements. It cannot be undone.")

    confirm = st.checkbox("I understand that my progress will be deleted")
    if st.button("Reset all progress", disabled=not confirm):
        result = reset_progress(st.session_state.progress)
        if result:
            st.session_state.current_module_id = 1
            st.toast("Progress reset.")
        else:
            st.toast("Progress could not be reset.")
        st.rerun()

    if st.button("Show the walkthrough again"):
        st.session_state.walkthrough.reset()
        st.rerun()


# -----------------------------------------------------------------------------
# Main App
# -----------------------------------------------------------------------------

def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()

    if st.session_state.view_mode == "learn":
        render_learn_view()
    elif st.session_state.view_mode == "settings":
        render_settings_view()


if __name__ == "__main__":
    main()
