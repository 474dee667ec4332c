"""
Upload pipeline — pluggable, ordered processing of uploaded files.

An UploadContext flows through the applicable UploadSteps in priority
order; each step returns an UploadResult that either continues the
chain with an updated context or ends it.  The executor lives in
``mediahub.pipeline.engine`` and the step catalogue in
``mediahub.pipeline.registry``.
"""

from mediahub.pipeline.context import UploadContext, UploadedFile, UploadUser
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import StepOptions, UploadStep

__all__ = [
    "StepOptions",
    "UploadContext",
    "UploadResult",
    "UploadStep",
    "UploadUser",
    "UploadedFile",
]
