"""
WalkthroughTracker - Remember whether the onboarding walkthrough was finished.

Stored under its own key as {"completed": bool, "timestamp": ISO-8601}.
Any anomaly (missing key, corrupt JSON, wrong shape, unreadable storage)
reads as "not completed" so the walkthrough is shown again.
"""

import json
import logging
from datetime import datetime
from typing import Callable, Optional

from pydantic import ValidationError

from llmedu.schemas import WalkthroughState

from .storage import PersistenceAdapter


logger = logging.getLogger(__name__)

WALKTHROUGH_STORAGE_KEY = "llm_edu_walkthrough_completed"


class WalkthroughTracker:
    """Persisted one-time walkthrough flag."""

    def __init__(
        self,
        adapter: Optional[PersistenceAdapter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.adapter = adapter if adapter is not None else PersistenceAdapter()
        self.clock = clock

    def _load_state(self) -> Optional[WalkthroughState]:
        """Stored state, or None. Corrupt data is removed."""
        stored = self.adapter.read(WALKTHROUGH_STORAGE_KEY)
        if stored is None:
            return None

        try:
            return WalkthroughState.model_validate(json.loads(stored))
        except ValidationError as e:
            logger.warning(f"Invalid walkthrough data structure ({e.error_count()} errors). Clearing invalid data.")
        except (ValueError, RecursionError) as e:
            # JSONDecodeError, oversized integers, deep nesting
            logger.warning(f"Corrupted walkthrough data ({type(e).__name__}). Clearing invalid data.")

        self.adapter.remove(WALKTHROUGH_STORAGE_KEY)
        return None

    def is_completed(self) -> bool:
        """True only if a valid document says the walkthrough was completed."""
        state = self._load_state()
        return state is not None and state.completed

    def mark_completed(self) -> bool:
        """Record completion. Returns False if storage rejected the write."""
        state = WalkthroughState(completed=True, timestamp=self.clock())
        saved = self.adapter.write(WALKTHROUGH_STORAGE_KEY, state.model_dump_json())
        if saved:
            logger.info(f"Walkthrough marked as completed at {state.timestamp.isoformat()}")
        return saved

    def reset(self) -> bool:
        """Forget completion so the walkthrough is shown again."""
        removed = self.adapter.remove(WALKTHROUGH_STORAGE_KEY)
        if removed:
            logger.info("Walkthrough status cleared")
        return removed

    def get_metadata(self) -> Optional[WalkthroughState]:
        """Stored state including its timestamp (None if absent or invalid)."""
        return self._load_state()
