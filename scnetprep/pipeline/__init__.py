"""Pipeline orchestration helpers.

Provides structured logging and in-memory stage execution.

Example Usage
-------------
>>> from scnetprep.pipeline import PipelineLogger, StageRunner
>>> logger = PipelineLogger("logs/")
>>> logger.setup()
>>> runner = StageRunner(logger)
>>> result = runner.run_stage("qc", "Count filtering", qc.filter_counts, raw)
"""

from .logger import (
    ColoredFormatter,
    PipelineLogger,
)
from .executor import StageRunner

__all__ = [
    "ColoredFormatter",
    "PipelineLogger",
    "StageRunner",
]
