"""
StorageManager — resolves named disks to their driver and adapter.
"""

from __future__ import annotations

from mediahub.core.config import DiskConfig, Settings
from mediahub.core.constants import StorageDisk
from mediahub.pipeline.errors import StorageError
from mediahub.storage.local import LocalDisk


class StorageManager:
    """Lazily builds and caches LocalDisk adapters per disk name."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._disks: dict[str, LocalDisk] = {}

    def config(self, disk: StorageDisk | str) -> DiskConfig:
        return self.settings.disk_config(disk)

    def driver(self, disk: StorageDisk | str) -> str:
        """``local`` or ``s3``."""
        return self.config(disk).driver

    def disk(self, disk: StorageDisk | str) -> LocalDisk:
        """Adapter for a local-driver disk."""
        config = self.config(disk)
        if config.driver != "local":
            raise StorageError(
                f"Disk '{config.name}' uses the '{config.driver}' driver; "
                "use CloudUploadService for object storage"
            )

        if config.name not in self._disks:
            self._disks[config.name] = LocalDisk(
                name=config.name,
                root=config.root,
                base_url=config.url,
                signing_key=self.settings.APP_KEY,
            )
        return self._disks[config.name]
