"""
Configuration loading for PSA cost-effectiveness summaries.

Settings live in a YAML file (default: config/config_default.yaml) so the
experiment scripts and the library defaults stay consistent.
"""
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml


DEFAULT_CONFIG_NAME = "config_default.yaml"


def get_repo_root() -> Path:
    """Return the repository root (the directory holding `psacea/`)."""
    return Path(__file__).resolve().parent.parent


def get_project_root() -> Path:
    """Return the project root used to resolve relative data/output paths."""
    return get_repo_root()


def load_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file. Relative paths are resolved against the
            repository root. If None, the default config is loaded.

    Returns:
        Parsed configuration dictionary (empty if the file is empty)
    """
    if path is None:
        config_path = get_repo_root() / "config" / DEFAULT_CONFIG_NAME
    else:
        config_path = Path(path)
        if not config_path.is_absolute():
            config_path = get_repo_root() / config_path

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        cfg = yaml.safe_load(f)

    if cfg is None:
        return {}
    if not isinstance(cfg, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping, got {type(cfg).__name__}")
    return cfg
