"""
Domain-specific exception hierarchy for the upload pipeline.

Steps never let these escape to the executor: they are raised inside
helpers and converted to failed UploadResults by the step that owns
them.  Each exception carries structured context (step name, details)
for logging.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base exception for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        step_name: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.step_name = step_name
        self.details = details or {}
        super().__init__(message)


class StepConfigurationError(PipelineError):
    """Step options in the context configuration are invalid."""
    pass


class HashCalculationError(PipelineError):
    """A content hash could not be computed (unsupported algorithm or I/O)."""

    def __init__(
        self,
        message: str,
        *,
        algorithm: str | None = None,
        **kwargs,
    ) -> None:
        self.algorithm = algorithm
        super().__init__(message, **kwargs)


class StorageError(PipelineError):
    """File storage operation (local disk or object storage) failed."""
    pass


class DiscoveryError(PipelineError):
    """A step class could not be instantiated during registry discovery."""
    pass
