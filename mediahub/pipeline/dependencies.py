"""
UploadServices — the collaborators steps reach for at run time.

The registry hands one container to every step it builds.  Tests build
their own container pointing at a temporary storage root, an SQLite
catalog and a fake S3 client.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from mediahub.core.config import Settings
from mediahub.storage.cloud import CloudUploadService, S3ClientFactory
from mediahub.storage.manager import StorageManager
from mediahub.storage.progress import ProgressNotifier


@dataclass
class UploadServices:
    settings: Settings
    storage: StorageManager
    cloud: CloudUploadService
    session_factory: async_sessionmaker[AsyncSession]
    notifier: ProgressNotifier = field(default_factory=ProgressNotifier)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        notifier: ProgressNotifier | None = None,
        client_factory: S3ClientFactory | None = None,
    ) -> UploadServices:
        """Wire the default collaborators for ``settings``."""
        if session_factory is None:
            from mediahub.db.session import get_session_factory

            session_factory = get_session_factory()

        notifier = notifier or ProgressNotifier()
        return cls(
            settings=settings,
            storage=StorageManager(settings),
            cloud=CloudUploadService(settings, notifier=notifier, client_factory=client_factory),
            session_factory=session_factory,
            notifier=notifier,
        )
