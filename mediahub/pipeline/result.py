"""
UploadResult — the outcome of one step execution.

A result either *continues* the chain (it carries a context for the
next step) or is *terminal* (no context).  Terminal results end the
pipeline whether they succeeded or failed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from mediahub.pipeline.context import UploadContext

# A diagnostic is either a human-readable string or a structured payload.
Diagnostic = str | Mapping[str, Any]


@dataclass(frozen=True)
class UploadResult:
    """Immutable outcome of a pipeline step (and of the pipeline as a whole)."""

    success: bool
    message: str | None = None
    record: Any = None
    path: str | None = None
    url: str | None = None
    filename: str | None = None
    size: int | None = None
    mime_type: str | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    errors: tuple[Diagnostic, ...] = ()
    context: UploadContext | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "errors", tuple(self.errors))

    # ─── Factory helpers ───────────────────────────────

    @classmethod
    def succeeded(
        cls,
        message: str | None = None,
        *,
        record: Any = None,
        path: str | None = None,
        url: str | None = None,
        filename: str | None = None,
        size: int | None = None,
        mime_type: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        context: UploadContext | None = None,
    ) -> UploadResult:
        """A successful result.  Terminal unless ``context`` is given."""
        return cls(
            success=True,
            message=message,
            record=record,
            path=path,
            url=url,
            filename=filename,
            size=size,
            mime_type=mime_type,
            metadata=metadata or {},
            context=context,
        )

    @classmethod
    def failed(
        cls,
        message: str,
        errors: Iterable[Diagnostic] | None = None,
        context: UploadContext | None = None,
    ) -> UploadResult:
        """A failed result.  Always ends the chain."""
        return cls(
            success=False,
            message=message,
            errors=tuple(errors or ()),
            context=context,
        )

    @classmethod
    def proceed(
        cls,
        context: UploadContext,
        message: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> UploadResult:
        """A successful result that hands ``context`` to the next step."""
        return cls(
            success=True,
            message=message,
            metadata=metadata or {},
            context=context,
        )

    # ─── Chain helpers ─────────────────────────────────

    def should_continue(self) -> bool:
        """True when the pipeline should run the next step."""
        return self.success and self.context is not None

    def updated_context(self) -> UploadContext | None:
        """The carried context with this result's metadata folded in."""
        if self.context is None:
            return None

        ctx = self.context
        for key, value in self.metadata.items():
            ctx = ctx.with_metadata(key, value)
        return ctx

    def to_dict(self) -> dict[str, Any]:
        """Serialise for API responses."""
        record = self.record
        if record is not None and hasattr(record, "to_dict"):
            record = record.to_dict()

        return {
            "success": self.success,
            "message": self.message,
            "record": record,
            "path": self.path,
            "url": self.url,
            "filename": self.filename,
            "size": self.size,
            "mime_type": self.mime_type,
            "metadata": dict(self.metadata),
            "errors": [
                dict(e) if isinstance(e, Mapping) else e
                for e in self.errors
            ],
        }
