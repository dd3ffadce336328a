"""
Data file loader utility for LLMEdu.

Loads YAML data files (curriculum catalog) from the package data/ directory.
"""

from pathlib import Path
from typing import Any
import yaml


# Default data directory (shipped inside the package)
DATA_DIR = Path(__file__).parent.parent / "data"


def load_data_file(name: str, data_dir: Path | None = None) -> dict[str, Any]:
    """
    Load a YAML data file by name.

    Args:
        name: File name without .yaml extension (e.g., "curriculum")
        data_dir: Optional custom data directory

    Returns:
        Dict containing the parsed YAML document

    Raises:
        FileNotFoundError: If data file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    dir_path = data_dir or DATA_DIR
    file_path = dir_path / f"{name}.yaml"
    return load_yaml_path(file_path)


def load_yaml_path(file_path: Path) -> dict[str, Any]:
    """Load a YAML document from an explicit path."""
    if not file_path.exists():
        raise FileNotFoundError(f"Data file not found: {file_path}")

    with open(file_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def get_available_data_files(data_dir: Path | None = None) -> list[str]:
    """
    List all available data files.

    Args:
        data_dir: Optional custom data directory

    Returns:
        List of data file names (without .yaml extension)
    """
    dir_path = data_dir or DATA_DIR
    if not dir_path.exists():
        return []
    return sorted(p.stem for p in dir_path.glob("*.yaml"))
