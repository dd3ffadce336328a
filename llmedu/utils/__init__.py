"""LLMEdu utility functions."""

from .data_loader import load_data_file, load_yaml_path, get_available_data_files

__all__ = [
    "load_data_file",
    "load_yaml_path",
    "get_available_data_files",
]
