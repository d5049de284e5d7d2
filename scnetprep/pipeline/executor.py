"""In-memory stage execution with stage-tagged errors."""

import time
from typing import Any, Callable, Dict, List, Optional

from ..errors import ScNetPrepError
from .logger import PipelineLogger


class StageRunner:
    """Runs pipeline stages in-memory, in call order.

    Each stage is a plain Python callable. The runner logs stage
    start/completion, records durations, and tags any ``ScNetPrepError``
    with the failing stage id before re-raising it, so callers can report
    which stage and which check failed.

    Parameters
    ----------
    logger : PipelineLogger, optional
        Logger instance

    Attributes
    ----------
    completed_stages : List[str]
        Stage ids that finished successfully, in order
    durations : Dict[str, float]
        Seconds spent per completed stage

    Example
    -------
    >>> runner = StageRunner()
    >>> cpm = runner.run_stage("normalize", "CPM normalization", normalizer.cpm, counts)
    """

    def __init__(self, logger: Optional[PipelineLogger] = None):
        self.logger = logger
        self.completed_stages: List[str] = []
        self.durations: Dict[str, float] = {}

    def run_stage(
        self,
        stage_id: str,
        name: str,
        func: Callable[..., Any],
        *args: Any,
        **kwargs: Any,
    ) -> Any:
        """Execute one stage function.

        Parameters
        ----------
        stage_id : str
            Stage identifier
        name : str
            Human-readable stage name
        func : Callable
            Stage function
        *args, **kwargs
            Arguments passed to ``func``

        Returns
        -------
        Any
            Whatever ``func`` returns

        Raises
        ------
        ScNetPrepError
            Re-raised with ``stage`` set when the stage fails
        """
        if self.logger:
            self.logger.log_stage_start(stage_id, name)

        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except ScNetPrepError as e:
            if e.stage is None:
                e.stage = stage_id
            if self.logger:
                self.logger.log_stage_error(stage_id, e.message)
            raise
        except Exception as e:
            if self.logger:
                self.logger.log_stage_error(stage_id, str(e))
            raise

        duration = time.time() - start_time
        self.durations[stage_id] = duration
        self.completed_stages.append(stage_id)
        if self.logger:
            self.logger.log_stage_complete(stage_id, duration)
        return result
