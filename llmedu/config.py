"""
Runtime configuration for LLMEdu.

Defaults can be overridden with environment variables (a .env file in the
working directory is loaded first):
- LLMEDU_HOME: directory holding storage.db (default ~/.llmedu)
- LLMEDU_LOG_LEVEL: logging level name (default INFO)
- LLMEDU_CURRICULUM: path to an alternative curriculum YAML file
"""

import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator


DEFAULT_STORAGE_DIR = Path.home() / ".llmedu"
DEFAULT_STORAGE_DB_NAME = "storage.db"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    storage_dir: Path = DEFAULT_STORAGE_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    curriculum_path: Optional[Path] = None

    @field_validator('log_level')
    @classmethod
    def known_level(cls, v):
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f'unknown log level: {v}')
        return level

    @property
    def storage_db(self) -> Path:
        return self.storage_dir / DEFAULT_STORAGE_DB_NAME


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Build settings from the environment (and an optional .env file)."""
    load_dotenv(env_file)

    values = {}
    if os.environ.get("LLMEDU_HOME"):
        values["storage_dir"] = Path(os.environ["LLMEDU_HOME"]).expanduser()
    if os.environ.get("LLMEDU_LOG_LEVEL"):
        values["log_level"] = os.environ["LLMEDU_LOG_LEVEL"]
    if os.environ.get("LLMEDU_CURRICULUM"):
        values["curriculum_path"] = Path(os.environ["LLMEDU_CURRICULUM"]).expanduser()
    return Settings(**values)


def configure_logging(level: str = DEFAULT_LOG_LEVEL):
    """Configure root logging for entry points (app, scripts)."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
    )
