"""
UploadStep — abstract base class for all upload pipeline steps.

Every step in the upload pipeline inherits from this class.  The
executor asks ``can_handle()`` and then awaits ``execute()``.  Steps
only implement the business logic; shared helpers here build results,
log, check size/type limits and parse typed step options.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.fields import FieldInfo

from mediahub.core.logging import get_logger
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.errors import StepConfigurationError
from mediahub.pipeline.result import Diagnostic, UploadResult

if TYPE_CHECKING:
    from mediahub.pipeline.dependencies import UploadServices

logger = get_logger(__name__)


class StepOptions(BaseModel):
    """Base for per-step typed options parsed from the context configuration."""

    model_config = ConfigDict(extra="ignore", frozen=True)


class UploadStep(ABC):
    """
    Base class for every upload step.

    Subclasses MUST implement:
        - name (str)          — unique identifier and enable-flag key
        - description (str)   — human-readable label for logs/UI
        - execute(ctx)        — the actual business logic

    Subclasses MAY set:
        - priority (int)      — lower runs earlier (default 100)
        - enabled (bool)      — default for the enable flag
        - options_model       — StepOptions subclass declaring config keys
    """

    name: str = "unnamed_step"
    description: str = "No description"
    priority: int = 100
    enabled: bool = True
    options_model: type[StepOptions] = StepOptions

    def __init__(self, services: UploadServices | None = None) -> None:
        self.services = services

    @abstractmethod
    async def execute(self, ctx: UploadContext) -> UploadResult:
        """
        Run the step's logic.  Must return an UploadResult.

        Expected failures are returned via ``self.failure(...)``;
        nothing should be raised out of this method.
        """
        ...

    def can_handle(self, ctx: UploadContext) -> bool:
        """Default: run whenever the step's enable flag is on."""
        return self.is_enabled(ctx)

    def is_enabled(self, ctx: UploadContext) -> bool:
        """Read the per-step flag (configuration key == step name)."""
        return bool(ctx.get_configuration(self.name, self.enabled))

    # ─── Options ───────────────────────────────────────

    def option_defaults(self, ctx: UploadContext) -> dict[str, Any]:
        """Context-derived values applied beneath explicit configuration."""
        return {}

    def options(self, ctx: UploadContext) -> Any:
        """Parse the context configuration into this step's options model."""
        raw = {**self.option_defaults(ctx), **_drop_none(ctx.configuration)}
        try:
            return self.options_model.model_validate(raw)
        except ValidationError as exc:
            raise StepConfigurationError(
                f"Invalid configuration for step '{self.name}'",
                step_name=self.name,
                details={
                    ".".join(str(p) for p in err["loc"]): err["msg"]
                    for err in exc.errors()
                },
            ) from exc

    def configuration_options(self) -> dict[str, dict[str, Any]]:
        """Describe recognised configuration keys (for introspection/UI)."""
        return {
            key: _describe_field(info)
            for key, info in self.options_model.model_fields.items()
        }

    @property
    def class_path(self) -> str:
        return f"{type(self).__module__}.{type(self).__qualname__}"

    # ─── Helpers available to all steps ────────────────

    def success(
        self,
        ctx: UploadContext,
        message: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> UploadResult:
        """Continue the chain with ``metadata`` folded into a new context."""
        metadata = dict(metadata or {})
        updated = ctx
        for key, value in metadata.items():
            updated = updated.with_metadata(key, value)

        return UploadResult.proceed(
            context=updated,
            message=message or f"Step '{self.name}' completed successfully",
            metadata=metadata,
        )

    def failure(
        self,
        message: str,
        errors: list[Diagnostic] | None = None,
        ctx: UploadContext | None = None,
    ) -> UploadResult:
        """Log and build a failed result."""
        logger.error(message, step=self.name, errors=errors or [])
        return UploadResult.failed(message=message, errors=errors or [], context=ctx)

    def log(self, message: str, **kwargs: Any) -> None:
        logger.info(message, step=self.name, **kwargs)

    def validate_file_size(self, ctx: UploadContext) -> bool:
        return ctx.file_size <= ctx.max_size_bytes

    def validate_mime_type(self, ctx: UploadContext) -> bool:
        if not ctx.allowed_mime_types:
            return True
        return ctx.mime_type in ctx.allowed_mime_types

    @staticmethod
    def format_file_size(size: int) -> str:
        """Human-readable byte size, e.g. ``1.5 KB`` or ``2 MB``."""
        for unit, factor in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
            if size >= factor:
                return f"{_trim(size / factor)} {unit}"
        return f"{size} B"

    def _now(self) -> datetime:
        """UTC-aware now."""
        return datetime.now(timezone.utc)


def _trim(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def _drop_none(mapping: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in mapping.items() if v is not None}


def _describe_field(info: FieldInfo) -> dict[str, Any]:
    """Render one options-model field as a configuration schema entry."""
    extra = info.json_schema_extra if isinstance(info.json_schema_extra, dict) else {}
    annotation = info.annotation
    default = info.default.value if isinstance(info.default, Enum) else info.default

    entry: dict[str, Any] = {"default": default, "description": info.description or ""}

    if "options" in extra:
        entry["type"] = "select"
        entry["options"] = list(extra["options"])
    elif isinstance(annotation, type) and issubclass(annotation, Enum):
        entry["type"] = "select"
        entry["options"] = [member.value for member in annotation]
    elif annotation is bool:
        entry["type"] = "boolean"
    elif annotation is int:
        entry["type"] = "integer"
    else:
        entry["type"] = "string"

    return {"type": entry.pop("type"), **entry}
