"""
LLMEdu Viewer - Rendering helpers for progress display.

This module provides:
- Continue-learning card and resume button data
- Module cards with lock state
- Progress bars and achievement badges
"""

from .progress import (
    get_progress_css,
    format_progress_label,
    render_progress_bar,
    render_resume_card,
    resume_call_to_action,
    render_module_card,
    render_achievement_badges,
    STATUS_LABELS,
    STATUS_CLASSES,
    RESUME_BUTTON_LABELS,
)

__all__ = [
    "get_progress_css",
    "format_progress_label",
    "render_progress_bar",
    "render_resume_card",
    "resume_call_to_action",
    "render_module_card",
    "render_achievement_badges",
    "STATUS_LABELS",
    "STATUS_CLASSES",
    "RESUME_BUTTON_LABELS",
]
