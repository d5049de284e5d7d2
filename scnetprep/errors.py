"""Error taxonomy for scnetprep.

All errors are deterministic data or configuration problems. They are fatal
for the stage that raises them; the pipeline never retries.
"""

from typing import Optional


class ScNetPrepError(Exception):
    """Base class for scnetprep errors.

    Attributes
    ----------
    stage : str, optional
        Identifier of the pipeline stage that raised the error. Set by
        ``StageRunner`` when the error passes through a stage boundary.
    """

    def __init__(self, message: str, stage: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"[stage {self.stage}] {self.message}"
        return self.message


class ConfigurationError(ScNetPrepError, ValueError):
    """Raised for unsupported namespace/species combinations or bad config."""

    pass


class DimensionError(ScNetPrepError, ValueError):
    """Raised when a matrix is too small or degenerate for an operation."""

    pass


class AlignmentError(ScNetPrepError, KeyError):
    """Raised when identifier sets of paired inputs do not match."""

    pass


class ParameterError(ScNetPrepError, ValueError):
    """Raised for invalid numeric parameters (k, top-N, labels, weights)."""

    pass
