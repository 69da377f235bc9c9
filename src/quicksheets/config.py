"""Engine configuration loaded from ``quicksheets.yaml``."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

from quicksheets.grid import EvaluationContext, Grid

CONFIG_FILENAME = "quicksheets.yaml"

DEFAULT_CONFIG: dict[str, Any] = {
    "max_range_cells": 100_000,  # None disables the limit
    "memoize": True,
    "log_dir": None,  # no event log unless set
    "logging_fsync": False,
    "logging_tail_bytes": 2_097_152,  # 2 MB
}

DEFAULT_CONFIG_TEXT = """\
# quicksheets engine configuration
max_range_cells: 100000
memoize: true
# log_dir: logs
"""


def load_config(directory: Path | None = None) -> dict[str, Any]:
    """Load configuration from ``quicksheets.yaml``, with defaults.

    Args:
        directory: Directory holding the config file.  Defaults to the
            current working directory.

    Returns:
        Merged configuration dict.  A relative ``log_dir`` is resolved
        against *directory*.

    Raises:
        ValueError: If the file is not a YAML mapping or has unknown keys.
    """
    directory = Path(directory) if directory is not None else Path.cwd()
    config = dict(DEFAULT_CONFIG)
    config_path = directory / CONFIG_FILENAME
    if config_path.exists():
        user_config = yaml.safe_load(config_path.read_text()) or {}
        if not isinstance(user_config, dict):
            raise ValueError(f"{config_path}: expected a mapping at top level")
        unknown = set(user_config) - set(DEFAULT_CONFIG)
        if unknown:
            raise ValueError(f"{config_path}: unknown config keys {sorted(unknown)}")
        config.update(user_config)

    if config.get("log_dir") is not None:
        log_dir = Path(config["log_dir"])
        if not log_dir.is_absolute():
            log_dir = directory / log_dir
        config["log_dir"] = log_dir
    return config


def write_default_config(directory: Path) -> Path:
    """Write a commented default ``quicksheets.yaml`` into *directory*.

    Raises:
        FileExistsError: If the file already exists.
    """
    path = Path(directory) / CONFIG_FILENAME
    if path.exists():
        raise FileExistsError(f"{path} already exists")
    path.write_text(DEFAULT_CONFIG_TEXT)
    return path


def context_from_config(
    grid: Grid,
    functions: Mapping[str, Callable[..., Any]],
    config: Mapping[str, Any] | None = None,
) -> EvaluationContext:
    """Build an :class:`EvaluationContext` honouring engine config keys."""
    cfg = dict(DEFAULT_CONFIG)
    if config:
        cfg.update(config)
    limit = cfg.get("max_range_cells")
    return EvaluationContext(
        grid=grid,
        functions=functions,
        max_range_cells=int(limit) if limit is not None else None,
        memoize=bool(cfg.get("memoize", True)),
    )
