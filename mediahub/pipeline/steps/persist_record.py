"""
PersistRecordStep — creates the catalog row for a stored upload.

This is the final step.  It reads what the store step recorded in the
context metadata, writes one Media row inside a transaction and returns
a terminal result carrying the row.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from mediahub.core.constants import TRANSIENT_METADATA_KEYS
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.errors import StepConfigurationError
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import StepOptions, UploadStep
from mediahub.repositories.media import create_media


class PersistRecordOptions(StepOptions):
    save_to_database: bool = Field(True, description="Save file information to database")
    include_metadata: bool = Field(True, description="Include metadata in database record")


class PersistRecordStep(UploadStep):
    """Save the stored file's details and metadata to the catalog."""

    name = "save_to_database"
    description = "Saves file information and metadata to the database"
    priority = 90
    options_model = PersistRecordOptions

    async def execute(self, ctx: UploadContext) -> UploadResult:
        self.log(
            "Starting database save",
            filename=ctx.original_filename,
            user_id=ctx.user.id,
        )

        try:
            opts: PersistRecordOptions = self.options(ctx)
        except StepConfigurationError as exc:
            return self.failure(str(exc), [exc.details], ctx)

        stored_path = ctx.get_metadata("stored_path")
        filename = ctx.get_metadata("filename")
        url = ctx.get_metadata("url")

        if not stored_path or not filename or not url:
            return self.failure(
                "Missing required file information for database save",
                [{"missing_data": "stored_path, filename, or url not found in context"}],
                ctx,
            )

        if self.services is None:
            return self.failure(
                "Database save failed: no catalog configured",
                [{"exception": "no catalog configured"}],
                ctx,
            )

        fields = self.build_media_fields(ctx, opts)

        try:
            async with self.services.session_factory() as session:
                async with session.begin():
                    media = await create_media(session, **fields)
        except Exception as exc:
            return self.failure(
                f"Database save failed: {exc}",
                [{"exception": str(exc)}],
                ctx,
            )

        self.log(
            "Database record created successfully",
            media_id=media.id,
            filename=filename,
        )

        return UploadResult.succeeded(
            "File saved to database successfully",
            record=media,
            path=stored_path,
            url=url,
            filename=filename,
            size=ctx.file_size,
            mime_type=ctx.mime_type,
            metadata=ctx.metadata,
        )

    def build_media_fields(
        self,
        ctx: UploadContext,
        opts: PersistRecordOptions,
    ) -> dict[str, Any]:
        """Column values for the new Media row."""
        fields: dict[str, Any] = {
            "user_id": ctx.user.id,
            "name": ctx.get_metadata("filename"),
            "original_name": ctx.original_filename,
            "path": ctx.get_metadata("stored_path"),
            "directory": ctx.directory,
            "disk": ctx.get_metadata("disk") or ctx.disk.value,
            "size": ctx.file_size,
            "mime_type": ctx.mime_type,
            "is_public": ctx.is_public,
            "url": ctx.get_metadata("url"),
        }

        if opts.include_metadata:
            metadata = {
                key: value
                for key, value in ctx.metadata.items()
                if key not in TRANSIENT_METADATA_KEYS
            }
            if metadata:
                fields["metadata"] = metadata

        width = ctx.get_metadata("width")
        height = ctx.get_metadata("height")
        if width and height:
            fields["width"] = width
            fields["height"] = height

        file_hash = ctx.get_metadata("file_hash")
        if file_hash:
            fields["file_hash"] = file_hash

        return fields
