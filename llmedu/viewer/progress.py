"""
Progress renderer - HTML fragments for progress display.

Provides:
- Continue-learning card from a resume point
- Module cards with lock state and section checklist
- Progress bars and achievement badges
"""

import html

from llmedu.classroom import NavigationModule, get_module_route
from llmedu.schemas import (
    Curriculum,
    ModuleStatus,
    ResumePoint,
    ResumeStatus,
)


STATUS_LABELS = {
    ModuleStatus.LOCKED: "Locked",
    ModuleStatus.IN_PROGRESS: "In progress",
    ModuleStatus.COMPLETED: "Completed",
}

# Module status to CSS class mapping
STATUS_CLASSES = {
    ModuleStatus.LOCKED: "module-locked",
    ModuleStatus.IN_PROGRESS: "module-in-progress",
    ModuleStatus.COMPLETED: "module-completed",
}

RESUME_BUTTON_LABELS = {
    ResumeStatus.NO_PROGRESS: "Start Learning",
    ResumeStatus.IN_PROGRESS: "Continue Learning",
    ResumeStatus.ALL_COMPLETE: "Review Modules",
}


def get_progress_css() -> str:
    """Get CSS styles for progress display."""
    return """
    <style>
    .resume-card {
        background: #e3f2fd;
        border-radius: 12px;
        padding: 1.2em 1.5em;
        margin: 1em 0;
        border-left: 4px solid #1976D2;
    }
    .resume-message {
        font-weight: 600;
        color: #1565C0;
        font-size: 1.1em;
    }
    .resume-location {
        color: #555;
        margin-top: 0.3em;
    }
    .progress-track {
        background: #eee;
        border-radius: 6px;
        height: 10px;
        overflow: hidden;
        margin: 0.5em 0;
    }
    .progress-fill {
        background: #388E3C;
        height: 100%;
    }
    .module-card {
        border: 1px solid #ddd;
        border-radius: 8px;
        padding: 1em;
        margin: 0.8em 0;
    }
    .module-locked {
        color: #999;
        background: #fafafa;
    }
    .module-in-progress {
        border-color: #1976D2;
    }
    .module-completed {
        border-color: #388E3C;
    }
    .module-hint {
        color: #777;
        font-size: 0.9em;
    }
    .section-done {
        color: #388E3C;
    }
    .achievement-badge {
        display: inline-block;
        background: #fff3e0;
        color: #e65100;
        border-radius: 12px;
        padding: 0.2em 0.8em;
        margin: 0.2em;
        font-size: 0.9em;
    }
    </style>
    """


def format_progress_label(completed: int, total: int, percent: int) -> str:
    """Short text like '3/5 sections (60%)'."""
    return f"{completed}/{total} sections ({percent}%)"


def render_progress_bar(percent: int) -> str:
    """Render a horizontal progress bar (percent clamped to 0-100)."""
    percent = max(0, min(100, percent))
    return f"""
    <div class="progress-track">
        <div class="progress-fill" style="width: {percent}%"></div>
    </div>
    """


def render_resume_card(resume: ResumePoint) -> str:
    """Render the continue-learning card."""
    location = ""
    if resume.status != ResumeStatus.ALL_COMPLETE and resume.module_title:
        location = html.escape(resume.module_title)
        if resume.section_title:
            location += f" · {html.escape(resume.section_title)}"

    return f"""
    <div class="resume-card">
        <div class="resume-message">{html.escape(resume.message)}</div>
        {f'<div class="resume-location">{location}</div>' if location else ''}
        {render_progress_bar(resume.overall_progress)}
        <div class="resume-location">{resume.overall_progress}% of the course completed</div>
    </div>
    """


def resume_call_to_action(resume: ResumePoint) -> dict:
    """
    Prepare the resume button for Streamlit.

    Returns a dict with the button label and target route.
    """
    return {
        "label": RESUME_BUTTON_LABELS[resume.status],
        "route": get_module_route(resume.module_id, resume.section_id),
        "module_id": resume.module_id,
        "section_id": resume.section_id,
    }


def render_module_card(module: NavigationModule) -> str:
    """Render one module with status and section checklist."""
    status_class = STATUS_CLASSES[module.status]
    label = STATUS_LABELS[module.status]

    if module.status == ModuleStatus.LOCKED:
        items = (
            f'<div class="module-hint">Complete Module {module.unlocked_by} to unlock</div>'
            if module.unlocked_by else ""
        )
    else:
        rows = []
        for nav_section in module.sections:
            mark = "✓" if nav_section.completed else ("→" if nav_section.is_current else "○")
            css = ' class="section-done"' if nav_section.completed else ""
            rows.append(f"<li{css}>{mark} {html.escape(nav_section.section.title)}</li>")
        items = f"<ul>{''.join(rows)}</ul>"

    return f"""
    <div class="module-card {status_class}">
        <strong>Module {module.module_id}: {html.escape(module.title)}</strong>
        <span> - {label}, {format_progress_label(module.completed_count, module.total_count, module.completion_percent)}</span>
        <span class="module-hint">~{module.estimated_minutes} min</span>
        {render_progress_bar(module.completion_percent)}
        {items}
    </div>
    """


def render_achievement_badges(achievement_ids: list[str], catalog: Curriculum) -> str:
    """Render unlocked achievements as badges (unknown IDs are skipped)."""
    badges = []
    for achievement_id in achievement_ids:
        achievement = catalog.get_achievement(achievement_id)
        if achievement:
            badges.append(
                f'<span class="achievement-badge" title="{html.escape(achievement.description)}">'
                f'{html.escape(achievement.title)}</span>'
            )
    return "".join(badges)
