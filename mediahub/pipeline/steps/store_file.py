"""
StoreFileStep — writes the upload to its disk and resolves its URL.

Disks with the ``s3`` driver go through CloudUploadService (multipart
uploads, progress events); ``local`` disks are written directly.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from datetime import timedelta
from typing import Any

from pydantic import Field

from mediahub.core.constants import Visibility
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.errors import StepConfigurationError
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import StepOptions, UploadStep

TEMPORARY_URL_TTL = timedelta(hours=1)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9\-_.]")
_REPEATED_UNDERSCORES = re.compile(r"_+")


class StoreFileOptions(StepOptions):
    randomize_filename: bool = Field(
        True, description="Generate a random filename to prevent conflicts",
    )
    preserve_extension: bool = Field(
        True, description="Preserve the original file extension",
    )
    sanitize_filename: bool = Field(
        True, description="Sanitize filename to remove unsafe characters",
    )
    force_filename: str | None = Field(
        None, description="Exact filename to store under (set by duplicate renaming)",
    )


class StoreFileStep(UploadStep):
    """Persist the uploaded bytes to the context's disk."""

    name = "process_file"
    description = "Processes and stores the uploaded file"
    priority = 50
    options_model = StoreFileOptions

    def option_defaults(self, ctx: UploadContext) -> dict[str, Any]:
        return {"randomize_filename": ctx.randomize_filename}

    async def execute(self, ctx: UploadContext) -> UploadResult:
        self.log(
            "Starting file processing",
            filename=ctx.original_filename,
            disk=ctx.disk.value,
            directory=ctx.directory,
        )

        try:
            opts: StoreFileOptions = self.options(ctx)
        except StepConfigurationError as exc:
            return self.failure(str(exc), [exc.details], ctx)

        if self.services is None:
            return self.failure(
                "File processing failed: no storage configured",
                [{"exception": "no storage configured"}],
                ctx,
            )

        filename = self.generate_filename(ctx, opts)

        try:
            if self.services.storage.driver(ctx.disk) == "s3":
                return await self._store_in_cloud(ctx, filename)
            return await self._store_locally(ctx, filename)
        except Exception as exc:
            return self.failure(
                f"File processing failed: {exc}",
                [{"exception": str(exc)}],
                ctx,
            )

    async def _store_in_cloud(self, ctx: UploadContext, filename: str) -> UploadResult:
        stored = await self.services.cloud.upload_with_progress(
            ctx.file,
            ctx.disk.value,
            ctx.directory,
            filename,
            ctx.user.id,
            ctx.session_id,
            self._visibility(ctx),
        )

        self.log(
            "File uploaded to cloud successfully",
            stored_path=stored["path"],
            filename=filename,
            url=stored["url"],
        )

        return self.success(ctx, "File uploaded to cloud successfully", {
            "stored_path": stored["path"],
            "filename": filename,
            "url": stored["url"],
            "disk": ctx.disk.value,
            "processed_at": self._now().isoformat(),
            "etag": stored.get("etag"),
        })

    async def _store_locally(self, ctx: UploadContext, filename: str) -> UploadResult:
        disk = self.services.storage.disk(ctx.disk)
        stored_path = await asyncio.to_thread(
            disk.put_file_as, ctx.directory, ctx.file, filename, self._visibility(ctx),
        )

        if not stored_path:
            return self.failure(
                "Failed to store file",
                [{"storage_error": "Could not write file to storage"}],
                ctx,
            )

        if ctx.is_public:
            url = disk.url(stored_path)
        else:
            url = disk.temporary_url(stored_path, self._now() + TEMPORARY_URL_TTL)

        self.log(
            "File processed successfully",
            stored_path=stored_path,
            filename=filename,
            url=url,
        )

        return self.success(ctx, "File processed successfully", {
            "stored_path": stored_path,
            "filename": filename,
            "url": url,
            "disk": ctx.disk.value,
            "processed_at": self._now().isoformat(),
        })

    def generate_filename(self, ctx: UploadContext, opts: StoreFileOptions) -> str:
        """Stored filename for this upload."""
        if opts.force_filename:
            return opts.force_filename

        if opts.randomize_filename:
            name = str(uuid.uuid4())
        else:
            name = ctx.file.stem
            if opts.sanitize_filename:
                name = sanitize_filename(name)
            if not name:
                name = str(uuid.uuid4())

        if opts.preserve_extension and ctx.extension:
            return f"{name}.{ctx.extension}"
        return name

    @staticmethod
    def _visibility(ctx: UploadContext) -> Visibility:
        return Visibility.PUBLIC if ctx.is_public else Visibility.PRIVATE


def sanitize_filename(name: str) -> str:
    """Replace unsafe characters with ``_``, collapse runs, trim the ends."""
    name = _UNSAFE_CHARS.sub("_", name)
    name = _REPEATED_UNDERSCORES.sub("_", name)
    return name.strip("_")
