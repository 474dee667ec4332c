"""
UploadService — entry point for callers that want a file uploaded.

Turns a flat caller configuration (what a form or API request sends)
into an UploadContext and runs it through the pipeline.

Usage::

    service = UploadService.from_settings(settings)
    result = await service.process(
        UploadedFile.from_path("/tmp/photo.jpg"),
        UploadUser(id=7),
        {"disk": "public", "check_duplicates": True},
    )
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediahub.core.config import Settings, settings as default_settings
from mediahub.core.constants import StorageDisk
from mediahub.core.logging import get_logger
from mediahub.pipeline.context import UploadContext, UploadedFile
from mediahub.pipeline.dependencies import UploadServices
from mediahub.pipeline.engine import UploadPipeline
from mediahub.pipeline.registry import StepRegistry
from mediahub.pipeline.result import UploadResult
from mediahub.storage.cloud import S3ClientFactory
from mediahub.storage.progress import ProgressNotifier

logger = get_logger(__name__)

MAX_SIZE_MB_LIMIT = 100


class UploadService:
    """Build upload contexts and drive them through the pipeline."""

    def __init__(self, registry: StepRegistry, settings: Settings | None = None) -> None:
        self.registry = registry
        self.settings = settings or default_settings
        self.pipeline = UploadPipeline(registry)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        notifier: ProgressNotifier | None = None,
        client_factory: S3ClientFactory | None = None,
    ) -> UploadService:
        """Service wired with the built-in steps and default collaborators."""
        settings = settings or default_settings
        services = UploadServices.from_settings(
            settings,
            session_factory=session_factory,
            notifier=notifier,
            client_factory=client_factory,
        )
        return cls(StepRegistry(services), settings)

    # ─── Processing ────────────────────────────────────

    async def process(
        self,
        file: UploadedFile,
        user: Any,
        configuration: Mapping[str, Any] | None = None,
    ) -> UploadResult:
        """Run one file through the pipeline."""
        ctx = self.create_context(file, user, configuration or {})
        return await self.pipeline.run(ctx)

    async def process_many(
        self,
        files: Iterable[UploadedFile],
        user: Any,
        configuration: Mapping[str, Any] | None = None,
    ) -> list[UploadResult]:
        """Run several files one after another with the same configuration."""
        results = []
        for file in files:
            results.append(await self.process(file, user, configuration))
        return results

    def available_steps(self) -> dict[str, dict[str, Any]]:
        return self.registry.configuration_schema()

    # ─── Context construction ──────────────────────────

    def create_context(
        self,
        file: UploadedFile,
        user: Any,
        configuration: Mapping[str, Any],
    ) -> UploadContext:
        """Map caller configuration onto a fresh UploadContext."""
        max_size_mb = configuration.get("max_size_mb") or self.settings.UPLOAD_MAX_SIZE_MB

        return UploadContext(
            file=file,
            user=user,
            disk=self._resolve_disk(configuration.get("disk")),
            directory=configuration.get("directory") or self.default_directory(user),
            is_public=_flag(configuration, "is_public", True),
            randomize_filename=_flag(configuration, "randomize_filename", True),
            extract_metadata=_flag(configuration, "extract_metadata", True),
            check_duplicates=_flag(configuration, "check_duplicates", False),
            max_size_bytes=int(float(max_size_mb) * 1024 * 1024),
            allowed_mime_types=configuration.get("allowed_mime_types") or (),
            metadata=configuration.get("metadata") or {},
            configuration=configuration,
            session_id=configuration.get("session_id") or str(uuid.uuid4()),
        )

    @staticmethod
    def default_directory(user: Any, now: datetime | None = None) -> str:
        """``uploads/<user id>/<YYYY>/<MM>``."""
        now = now or datetime.now(timezone.utc)
        return f"uploads/{user.id}/{now:%Y/%m}"

    def _resolve_disk(self, disk: Any) -> StorageDisk:
        for candidate in (disk, self.settings.UPLOAD_DEFAULT_DISK):
            if candidate is None:
                continue
            try:
                return StorageDisk(candidate)
            except ValueError:
                logger.warning("Unknown storage disk, using default", disk=candidate)
        return StorageDisk.SPACES

    # ─── Validation ────────────────────────────────────

    def validate_configuration(self, configuration: Mapping[str, Any]) -> dict[str, str]:
        """Field-level problems with a caller configuration; empty when valid."""
        errors: dict[str, str] = {}

        if configuration.get("disk") is not None:
            try:
                StorageDisk(configuration["disk"])
            except ValueError:
                errors["disk"] = "Invalid storage disk specified"

        if configuration.get("max_size_mb") is not None:
            try:
                max_size = float(configuration["max_size_mb"])
            except (TypeError, ValueError):
                max_size = None
            if max_size is None or not 1 <= max_size <= MAX_SIZE_MB_LIMIT:
                errors["max_size_mb"] = f"Max size must be between 1 and {MAX_SIZE_MB_LIMIT} MB"

        allowed = configuration.get("allowed_mime_types")
        if allowed is not None and not isinstance(allowed, (list, tuple)):
            errors["allowed_mime_types"] = "Allowed MIME types must be an array"

        return errors


def _flag(configuration: Mapping[str, Any], key: str, default: bool) -> bool:
    value = configuration.get(key)
    return default if value is None else bool(value)
