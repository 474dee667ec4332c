"""
DetectDuplicatesStep — content-hash duplicate detection against the catalog.

Hashes the uploaded bytes and looks for an existing Media row with the
same hash, either among the uploader's files or across all users.  What
happens on a match is configurable: reject the upload, return the
existing record instead, or store the new copy under a renamed file.
"""

from __future__ import annotations

import asyncio
import hashlib

from pydantic import Field

from mediahub.core.constants import DuplicateAction, DuplicateScope
from mediahub.core.logging import get_logger
from mediahub.db.models.media import Media
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.errors import HashCalculationError, StepConfigurationError
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import StepOptions, UploadStep
from mediahub.repositories.media import find_by_hash

logger = get_logger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024


class DetectDuplicatesOptions(StepOptions):
    hash_algorithm: str = Field(
        "sha256",
        description="Hashing algorithm to use for duplicate detection",
        json_schema_extra={"options": ["sha256", "md5", "sha1"]},
    )
    scope: DuplicateScope = Field(
        DuplicateScope.USER,
        description="Scope for duplicate detection (user-specific or global)",
    )
    action_on_duplicate: DuplicateAction = Field(
        DuplicateAction.REJECT,
        description="Action to take when a duplicate is found",
    )


class DetectDuplicatesStep(UploadStep):
    """Detect uploads whose content already exists in the catalog."""

    name = "duplicate_detection"
    description = "Detects duplicate files based on content hash to prevent storage waste"
    priority = 25
    options_model = DetectDuplicatesOptions

    def can_handle(self, ctx: UploadContext) -> bool:
        return ctx.check_duplicates and self.is_enabled(ctx)

    async def execute(self, ctx: UploadContext) -> UploadResult:
        self.log(
            "Starting duplicate detection",
            filename=ctx.original_filename,
            user_id=ctx.user.id,
        )

        try:
            opts: DetectDuplicatesOptions = self.options(ctx)
        except StepConfigurationError as exc:
            return self.failure(str(exc), [exc.details], ctx)

        try:
            file_hash = await asyncio.to_thread(
                calculate_file_hash, ctx.file.path, opts.hash_algorithm,
            )
        except HashCalculationError as exc:
            logger.error(str(exc), step=self.name, algorithm=exc.algorithm)
            return self.failure(
                "Failed to calculate file hash for duplicate detection",
                [{"hash_calculation_failed": True}],
                ctx,
            )

        try:
            existing = await self._find_existing(ctx, file_hash, opts.scope)
        except Exception as exc:
            return self.failure(
                f"Duplicate detection failed: {exc}",
                [{"exception": str(exc)}],
                ctx,
            )

        if existing is None:
            self.log(
                "No duplicate found, continuing processing",
                filename=ctx.original_filename,
                hash=file_hash,
            )
            return self.success(ctx, "No duplicate found", {
                "file_hash": file_hash,
                "hash_algorithm": opts.hash_algorithm,
                "duplicate_check_passed": True,
            })

        self.log(
            "Duplicate file detected",
            filename=ctx.original_filename,
            existing_media_id=existing.id,
            hash=file_hash,
            action=opts.action_on_duplicate.value,
        )

        if opts.action_on_duplicate == DuplicateAction.SKIP:
            return self._skip(existing)
        if opts.action_on_duplicate == DuplicateAction.RENAME:
            return self._rename(ctx, existing, file_hash, opts.hash_algorithm)
        return self._reject(ctx, existing)

    async def _find_existing(
        self,
        ctx: UploadContext,
        file_hash: str,
        scope: DuplicateScope,
    ) -> Media | None:
        if self.services is None:
            raise RuntimeError("No catalog session factory configured")

        user_id = ctx.user.id if scope == DuplicateScope.USER else None
        async with self.services.session_factory() as session:
            return await find_by_hash(session, file_hash, user_id=user_id)

    # ─── Duplicate actions ─────────────────────────────

    def _reject(self, ctx: UploadContext, existing: Media) -> UploadResult:
        return self.failure(
            "File already exists (duplicate detected)",
            [{
                "duplicate_detected": True,
                "existing_file": {
                    "id": existing.id,
                    "filename": existing.name,
                    "original_filename": existing.original_name,
                    "url": existing.url,
                    "uploaded_at": existing.created_at.isoformat() if existing.created_at else None,
                },
            }],
            ctx,
        )

    def _skip(self, existing: Media) -> UploadResult:
        # Terminal: nothing after this step runs for a skipped upload
        return UploadResult.succeeded(
            "Duplicate file skipped, returning existing file",
            record=existing,
            path=existing.path,
            url=existing.url,
            filename=existing.name,
            size=existing.size,
            mime_type=existing.mime_type,
            metadata={
                "duplicate_skipped": True,
                "existing_file_id": existing.id,
                "file_hash": existing.file_hash,
            },
        )

    def _rename(
        self,
        ctx: UploadContext,
        existing: Media,
        file_hash: str,
        algorithm: str,
    ) -> UploadResult:
        timestamp = self._now().strftime("%Y%m%d%H%M%S")
        new_name = f"{ctx.file.stem}_duplicate_{timestamp}"
        if ctx.extension:
            new_name = f"{new_name}.{ctx.extension}"

        updated = ctx.with_configuration({
            "force_filename": new_name,
            "duplicate_renamed": True,
            "original_duplicate_id": existing.id,
        })

        return self.success(updated, "Duplicate detected, proceeding with renamed file", {
            "duplicate_renamed": True,
            "original_duplicate_id": existing.id,
            "new_filename": new_name,
            "file_hash": file_hash,
            "hash_algorithm": algorithm,
        })


def calculate_file_hash(path: str, algorithm: str) -> str:
    """
    Hex digest of the file at ``path``.

    Raises:
        HashCalculationError: Unknown algorithm or unreadable file.
    """
    if algorithm not in hashlib.algorithms_available:
        raise HashCalculationError(
            f"Unsupported hash algorithm: {algorithm}", algorithm=algorithm,
        )

    try:
        digest = hashlib.new(algorithm)
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(HASH_CHUNK_SIZE), b""):
                digest.update(chunk)
    except (OSError, ValueError) as exc:
        raise HashCalculationError(
            f"Failed to calculate file hash: {exc}", algorithm=algorithm,
        ) from exc

    # shake_* digests need an explicit length
    try:
        return digest.hexdigest()
    except TypeError as exc:
        raise HashCalculationError(
            f"Unsupported hash algorithm: {algorithm}", algorithm=algorithm,
        ) from exc
