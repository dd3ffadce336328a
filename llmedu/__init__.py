"""
LLMEdu - Progress tracking core for an interactive LLM course.

Subpackages:
- schemas: Pydantic models (curriculum, progress, resume point)
- classroom: storage, progress manager, navigator, walkthrough
- viewer: HTML rendering helpers
"""

__version__ = "0.1.0"
