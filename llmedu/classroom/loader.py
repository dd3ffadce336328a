"""
CurriculumLoader - Load the static course catalog from YAML.

Provides read-only access to:
- Modules and their ordered sections
- Achievement definitions
"""

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from llmedu.schemas import Curriculum
from llmedu.utils import load_data_file, load_yaml_path


logger = logging.getLogger(__name__)

DEFAULT_CURRICULUM_NAME = "curriculum"


class CurriculumError(Exception):
    """The curriculum file is missing or malformed."""


class CurriculumLoader:
    """
    Load curriculum data from a YAML file.

    The catalog is static content shipped with the package; a broken file is
    a packaging error, so failures raise CurriculumError instead of falling
    back to defaults.
    """

    def __init__(self, path: Optional[str | Path] = None):
        """
        Initialize loader.

        Args:
            path: Path to a curriculum YAML file (default: packaged curriculum.yaml)
        """
        self.path = Path(path) if path else None
        self._curriculum: Optional[Curriculum] = None

    def load(self) -> Curriculum:
        """Parse and validate the curriculum (cached after first call)."""
        if self._curriculum is not None:
            return self._curriculum

        try:
            if self.path:
                data = load_yaml_path(self.path)
            else:
                data = load_data_file(DEFAULT_CURRICULUM_NAME)
        except (FileNotFoundError, yaml.YAMLError) as e:
            raise CurriculumError(f"Cannot read curriculum: {e}") from e

        try:
            self._curriculum = Curriculum.model_validate(data)
        except ValidationError as e:
            raise CurriculumError(f"Invalid curriculum: {e}") from e

        logger.debug(
            f"Loaded curriculum: {len(self._curriculum.modules)} modules, "
            f"{self._curriculum.total_sections} sections"
        )
        return self._curriculum


def load_curriculum(path: Optional[str | Path] = None) -> Curriculum:
    """Load the packaged curriculum (or the one at path)."""
    return CurriculumLoader(path).load()
