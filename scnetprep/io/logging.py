"""Logging utilities for scnetprep.

Provides structured YAML output for run parameters and summaries.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Union

import yaml

PathLike = Union[str, Path]


def _prepare_log_destination(log_path: PathLike) -> Path:
    """Ensure log destination directory exists."""
    path = Path(log_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def log_yaml(
    log_path: PathLike | None,
    record: dict[str, Any],
    *,
    logger: logging.Logger | None = None,
) -> None:
    """Append a YAML document to log_path.

    Parameters
    ----------
    log_path : PathLike, optional
        Path to log file. Ignored when ``logger`` is given.
    record : dict
        Dictionary to serialize as YAML.
    logger : logging.Logger, optional
        If provided, log to this logger instead of file.
    """
    yaml_text = yaml.safe_dump(record, sort_keys=False).rstrip("\n")
    message = f"{yaml_text}\n---"
    if logger is not None:
        logger.info("%s", message)
        return

    if log_path is None:
        raise ValueError("log_path is required when no logger is given")
    path = _prepare_log_destination(log_path)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(message)
        handle.write("\n")


def write_yaml(path: PathLike, record: dict[str, Any]) -> Path:
    """Write ``record`` as a single YAML document, replacing the file.

    Parameters
    ----------
    path : PathLike
        Output path.
    record : dict
        Dictionary to serialize.

    Returns
    -------
    Path
        The written path.
    """
    path = _prepare_log_destination(path)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(record, handle, sort_keys=False)
    return path
