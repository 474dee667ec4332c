"""
ValidateFileStep — size, MIME type and extension checks.

Runs first.  Every enabled check is evaluated and all violations are
reported together in one failed result.
"""

from __future__ import annotations

from pydantic import Field

from mediahub.core.constants import AllowedImageType
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.errors import StepConfigurationError
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import StepOptions, UploadStep


class ValidateFileOptions(StepOptions):
    validate_size: bool = Field(
        True, description="Validate file size against maximum allowed size",
    )
    validate_mime_type: bool = Field(
        True, description="Validate file MIME type against allowed types",
    )
    validate_extension: bool = Field(True, description="Validate file extension")


class ValidateFileStep(UploadStep):
    """Reject files that are too large or of a disallowed type."""

    name = "validate_file"
    description = "Validates uploaded file size, type, and extension"
    priority = 10
    options_model = ValidateFileOptions

    async def execute(self, ctx: UploadContext) -> UploadResult:
        self.log(
            "Starting file validation",
            filename=ctx.original_filename,
            size=ctx.file_size,
            mime_type=ctx.mime_type,
        )

        try:
            opts: ValidateFileOptions = self.options(ctx)
        except StepConfigurationError as exc:
            return self.failure(str(exc), [exc.details], ctx)

        errors: list[str] = []

        if opts.validate_size and not self.validate_file_size(ctx):
            errors.append(
                f"File size ({self.format_file_size(ctx.file_size)}) exceeds "
                f"maximum allowed size ({self.format_file_size(ctx.max_size_bytes)})"
            )

        if opts.validate_mime_type and not self.validate_mime_type(ctx):
            allowed_types = ctx.allowed_mime_types or AllowedImageType.all_mime_types()
            errors.append(
                f"File type ({ctx.mime_type}) is not allowed. "
                f"Allowed types: {', '.join(allowed_types)}"
            )

        if opts.validate_extension:
            extension = ctx.extension.lower()
            allowed_extensions = AllowedImageType.all_extensions()
            if extension not in allowed_extensions:
                errors.append(
                    f"File extension ({extension}) is not allowed. "
                    f"Allowed extensions: {', '.join(allowed_extensions)}"
                )

        if errors:
            return self.failure("File validation failed", errors, ctx)

        return self.success(ctx, "File validation passed", {
            "validated_at": self._now().isoformat(),
            "file_size": ctx.file_size,
            "file_size_formatted": self.format_file_size(ctx.file_size),
            "mime_type": ctx.mime_type,
            "extension": ctx.extension,
        })
