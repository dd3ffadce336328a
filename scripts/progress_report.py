#!/usr/bin/env python3
"""
progress_report.py - Inspect or reset learner progress in a storage database.

Prints the resume point, per-module status and unlocked achievements.
Optionally migrates the stored document or clears progress / walkthrough.

Usage:
  python scripts/progress_report.py
  python scripts/progress_report.py --db ~/.llmedu/storage.db --json
  python scripts/progress_report.py --migrate
  python scripts/progress_report.py --reset --reset-walkthrough
"""

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from llmedu.config import configure_logging, load_settings
from llmedu.classroom import (
    CurriculumLoader,
    Navigator,
    PersistenceAdapter,
    ProgressManager,
    SQLiteBackend,
    WalkthroughTracker,
    reset_progress,
)

SETTINGS = load_settings(PROJECT_ROOT / ".env")
configure_logging(SETTINGS.log_level)
logger = logging.getLogger(__name__)


def build_report(navigator: Navigator, walkthrough: WalkthroughTracker) -> dict:
    """Collect resume point, module stats and flags into one dict."""
    resume = navigator.get_resume_point()
    summary = navigator.progress.get_completion_stats()
    return {
        "resume": resume.model_dump(mode="json", by_alias=True),
        "completion_percent": summary["completion_percent"],
        "completed_sections": summary["completed"],
        "total_sections": summary["total_sections"],
        "modules": summary["modules"],
        "achievements": navigator.progress.get_achievements(),
        "walkthrough_completed": walkthrough.is_completed(),
    }


def print_report(report: dict, navigator: Navigator):
    resume = report["resume"]
    print(f"Overall: {report['completed_sections']}/{report['total_sections']} "
          f"sections ({report['completion_percent']}%)")
    print(f"Resume:  {resume['status']}"
          + (f" -> module {resume['moduleId']}" if resume['moduleId'] else "")
          + (f", section {resume['sectionId']}" if resume['sectionId'] else ""))
    print()
    for nav_module in navigator.get_navigation_tree():
        indicator = navigator.get_status_indicator(nav_module.module_id)
        print(f"  {indicator} Module {nav_module.module_id}: {nav_module.title} "
              f"[{nav_module.status.value}] {nav_module.completed_count}/{nav_module.total_count}")
    print()
    achievements = report["achievements"]
    print(f"Achievements: {', '.join(achievements) if achievements else 'none'}")
    print(f"Walkthrough completed: {'yes' if report['walkthrough_completed'] else 'no'}")


def main():
    parser = argparse.ArgumentParser(
        description="Inspect or reset stored learner progress",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=SETTINGS.storage_db,
        help="Path to storage database"
    )
    parser.add_argument(
        "--curriculum",
        type=Path,
        default=SETTINGS.curriculum_path,
        help="Path to curriculum YAML (default: packaged curriculum)"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the report as JSON"
    )
    parser.add_argument(
        "--migrate",
        action="store_true",
        help="Upgrade the stored progress document to the current schema"
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Delete all stored progress"
    )
    parser.add_argument(
        "--reset-walkthrough",
        action="store_true",
        help="Forget that the walkthrough was completed"
    )

    args = parser.parse_args()

    adapter = PersistenceAdapter(SQLiteBackend(args.db.expanduser()))
    if not adapter.is_available():
        logger.error(f"Storage at {args.db} is not available")
        return 1

    catalog = CurriculumLoader(args.curriculum).load()
    progress = ProgressManager(adapter, catalog)
    navigator = Navigator(progress)
    walkthrough = WalkthroughTracker(adapter)

    if args.migrate:
        result = progress.migrate_progress_data()
        if not result:
            logger.error(f"Migration failed: {result.detail}")
            return 1
        logger.info("Progress data migrated" if result.changed else "Progress data already current")

    if args.reset:
        if not reset_progress(progress):
            return 1
        logger.info("Progress cleared")

    if args.reset_walkthrough:
        if not walkthrough.reset():
            return 1
        logger.info("Walkthrough status cleared")

    report = build_report(navigator, walkthrough)
    if args.json:
        print(json.dumps(report, indent=2, ensure_ascii=False))
    else:
        print_report(report, navigator)
    return 0


if __name__ == "__main__":
    sys.exit(main())
