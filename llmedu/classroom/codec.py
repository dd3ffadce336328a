"""
Progress document codec.

Converts between the JSON string held in storage and ProgressSnapshot:
- encode: snapshot -> JSON (camelCase keys, module ids as string keys)
- decode: JSON -> snapshot, never raises
- migrate: raw document -> current schema version, one step at a time

A document that fails parsing, migration or validation is discarded as a
whole and replaced by a fresh empty snapshot. Partial recovery is never
attempted.
"""

import json
import logging
from typing import Any, Callable, Optional

from pydantic import ValidationError

from llmedu.schemas import (
    SCHEMA_VERSION,
    Curriculum,
    ModuleProgress,
    ProgressSnapshot,
    SectionProgress,
)


logger = logging.getLogger(__name__)

PROGRESS_STORAGE_KEY = "llm_edu_progress"


class CorruptDocumentError(ValueError):
    """Stored progress document cannot be used."""


class MigrationError(CorruptDocumentError):
    """Stored progress document cannot be migrated to the current version."""


# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

def empty_snapshot(catalog: Curriculum) -> ProgressSnapshot:
    """Fresh snapshot with every catalog section incomplete."""
    modules = {
        module.id: ModuleProgress(
            id=module.id,
            title=module.title,
            sections=[
                SectionProgress(id=section.id, title=section.title, completed=False)
                for section in module.sections
            ],
        )
        for module in catalog.modules
    }
    return ProgressSnapshot(schema_version=SCHEMA_VERSION, modules=modules).refresh_statuses()


# -----------------------------------------------------------------------------
# Migration
# -----------------------------------------------------------------------------

# Fields of the v1 document that are either cached derived values or moved
# to their own storage keys.
V1_DROPPED_FIELDS = ("gender", "preferences")
V1_DROPPED_MODULE_FIELDS = ("completionPercentage",)


def _migrate_v1_session(session: Any) -> Any:
    """v1 sessions started before any module was visited hold a null id."""
    if not isinstance(session, dict):
        return session
    migrated = dict(session)
    visited = migrated.get("modulesVisited")
    if isinstance(visited, list):
        migrated["modulesVisited"] = [m for m in visited if m is not None]
    return migrated


def _migrate_v0_to_v1(document: dict) -> dict:
    """Unversioned documents share the v1 shape."""
    migrated = dict(document)
    migrated["version"] = 1
    return migrated


def _migrate_v1_to_v2(document: dict) -> dict:
    """Drop cached/legacy fields, flatten achievements to their ids."""
    migrated = {k: v for k, v in document.items() if k not in V1_DROPPED_FIELDS}

    modules = migrated.get("modules")
    if isinstance(modules, dict):
        migrated["modules"] = {
            key: (
                {k: v for k, v in module.items() if k not in V1_DROPPED_MODULE_FIELDS}
                if isinstance(module, dict) else module
            )
            for key, module in modules.items()
        }

    achievements = migrated.get("achievements")
    if isinstance(achievements, list):
        migrated["achievements"] = [
            a.get("id") if isinstance(a, dict) else a
            for a in achievements
        ]

    sessions = migrated.get("sessionHistory")
    if isinstance(sessions, list):
        migrated["sessionHistory"] = [_migrate_v1_session(s) for s in sessions]

    migrated["version"] = 2
    return migrated


# version -> step producing version + 1
MIGRATIONS: dict[int, Callable[[dict], dict]] = {
    0: _migrate_v0_to_v1,
    1: _migrate_v1_to_v2,
}


def document_version(document: dict) -> int:
    """Schema version of a raw document (0 if absent)."""
    version = document.get("version")
    if version is None:
        return 0
    if isinstance(version, bool) or not isinstance(version, int) or version < 0:
        raise MigrationError(f"invalid schema version: {version!r}")
    return version


def migrate(document: dict[str, Any]) -> dict[str, Any]:
    """
    Upgrade a raw progress document to SCHEMA_VERSION.

    Idempotent: a current document is returned unchanged (as a copy).

    Raises:
        MigrationError: version is invalid, newer than supported, or has
            no migration path
    """
    version = document_version(document)
    if version > SCHEMA_VERSION:
        raise MigrationError(
            f"document version {version} is newer than supported {SCHEMA_VERSION}"
        )

    migrated = dict(document)
    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise MigrationError(f"no migration from version {version}")
        migrated = step(migrated)
        logger.info(f"Migrated progress document v{version} -> v{migrated['version']}")
        version = migrated["version"]
    return migrated


# -----------------------------------------------------------------------------
# Catalog reconciliation
# -----------------------------------------------------------------------------

def reconcile(snapshot: ProgressSnapshot, catalog: Curriculum) -> ProgressSnapshot:
    """
    Check a validated snapshot against the curriculum.

    Section lists are append-only: stored section ids must be a prefix of
    the catalog's, and sections added to the catalog since the document was
    written are appended as incomplete.

    Raises:
        CorruptDocumentError: snapshot does not fit the curriculum
    """
    expected_ids = set(catalog.module_ids)
    stored_ids = set(snapshot.modules)
    if stored_ids != expected_ids:
        raise CorruptDocumentError(
            f"module ids {sorted(stored_ids)} do not match curriculum {sorted(expected_ids)}"
        )

    for module_def in catalog.modules:
        module = snapshot.modules[module_def.id]
        stored = [s.id for s in module.sections]
        expected = module_def.section_ids
        if stored != expected[:len(stored)]:
            raise CorruptDocumentError(
                f"module {module_def.id} sections {stored} are not a prefix of {expected}"
            )
        for section_def in module_def.sections[len(stored):]:
            module.sections.append(
                SectionProgress(id=section_def.id, title=section_def.title, completed=False)
            )

    if snapshot.current_module is not None and snapshot.current_module not in expected_ids:
        raise CorruptDocumentError(f"unknown current module {snapshot.current_module}")

    for session in snapshot.session_history:
        unknown_visits = [m for m in session.modules_visited if m not in expected_ids]
        if unknown_visits:
            raise CorruptDocumentError(f"session visited unknown modules: {unknown_visits}")

    known_achievements = set(catalog.achievement_ids)
    unknown = [a for a in snapshot.achievements if a not in known_achievements]
    if unknown:
        raise CorruptDocumentError(f"unknown achievements: {unknown}")

    return snapshot


# -----------------------------------------------------------------------------
# Encode / decode
# -----------------------------------------------------------------------------

def encode(snapshot: ProgressSnapshot) -> str:
    """Serialize a snapshot for storage."""
    return snapshot.model_dump_json(by_alias=True)


def parse_document(raw: str) -> dict[str, Any]:
    """
    Parse a stored string into a raw document.

    Raises:
        CorruptDocumentError: not JSON, or not a JSON object
    """
    # ValueError covers JSONDecodeError and oversized integer literals
    try:
        document = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        raise CorruptDocumentError(f"invalid JSON: {e}") from e
    if not isinstance(document, dict):
        raise CorruptDocumentError(f"expected a JSON object, got {type(document).__name__}")
    return document


def try_decode(raw: Optional[str], catalog: Curriculum) -> Optional[ProgressSnapshot]:
    """
    Decode a stored document.

    Returns None for absent or unusable documents (the reason is logged).
    """
    if raw is None:
        return None

    try:
        document = migrate(parse_document(raw))
        snapshot = ProgressSnapshot.model_validate(document)
        reconcile(snapshot, catalog)
    except CorruptDocumentError as e:
        logger.warning(f"Discarding corrupted progress data: {e}")
        return None
    except ValidationError as e:
        logger.warning(f"Discarding invalid progress data: {e.error_count()} validation errors")
        logger.debug(str(e))
        return None

    return snapshot.refresh_statuses()


def decode(raw: Optional[str], catalog: Curriculum) -> ProgressSnapshot:
    """Decode a stored document, falling back to a fresh empty snapshot."""
    snapshot = try_decode(raw, catalog)
    if snapshot is None:
        return empty_snapshot(catalog)
    return snapshot
