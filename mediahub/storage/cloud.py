"""
CloudUploadService — uploads to S3-compatible object storage with progress.

Works for every disk whose driver is ``s3`` (Amazon S3, DigitalOcean
Spaces, Cloudflare R2).  boto3 is synchronous, so the transfer runs in
a worker thread; progress samples are published to the ProgressNotifier
from boto3's transfer callback.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig

from mediahub.core.config import DiskConfig, Settings
from mediahub.core.constants import UploadPhase, Visibility
from mediahub.core.logging import get_logger
from mediahub.pipeline.context import UploadedFile
from mediahub.pipeline.errors import StorageError
from mediahub.storage.progress import CloudUploadProgress, ProgressNotifier

logger = get_logger(__name__)

MULTIPART_THRESHOLD = 100 * 1024 * 1024     # 100 MiB
PROGRESS_FREQUENCY = 1024 * 1024            # report every 1 MiB
PRESIGNED_URL_TTL = 3600                    # seconds

S3ClientFactory = Callable[[DiskConfig], Any]


class UploadProgressReporter:
    """
    boto3 transfer callback that turns byte increments into progress events.

    boto3 may call this from several transfer threads at once.
    """

    def __init__(
        self,
        notifier: ProgressNotifier | None,
        user_id: int,
        session_id: str | None,
        filename: str,
        total_bytes: int,
    ) -> None:
        self.notifier = notifier
        self.user_id = user_id
        self.session_id = session_id
        self.filename = filename
        self.total_bytes = total_bytes
        self.bytes_uploaded = 0
        self._last_reported = 0
        self._started = time.monotonic()
        self._lock = threading.Lock()

    def __call__(self, bytes_amount: int) -> None:
        with self._lock:
            self.bytes_uploaded += bytes_amount
            uploaded = self.bytes_uploaded

            if self.total_bytes == 0:
                return
            if uploaded - self._last_reported < PROGRESS_FREQUENCY and uploaded < self.total_bytes:
                return
            self._last_reported = uploaded

        self._publish(uploaded, UploadPhase.UPLOADING)

    def complete(self) -> None:
        self._publish(self.total_bytes, UploadPhase.COMPLETED)

    def _publish(self, uploaded: int, phase: str) -> None:
        if self.notifier is None:
            return

        elapsed = time.monotonic() - self._started
        speed = uploaded / elapsed if elapsed > 0 else 0.0
        remaining = max(self.total_bytes - uploaded, 0)
        eta = int(remaining / speed) if speed > 0 else None
        percentage = (uploaded / self.total_bytes * 100) if self.total_bytes else 100.0

        self.notifier.publish(CloudUploadProgress(
            user_id=self.user_id,
            session_id=self.session_id,
            filename=self.filename,
            bytes_uploaded=uploaded,
            total_bytes=self.total_bytes,
            percentage=round(percentage, 2),
            speed=speed,
            eta=eta,
            phase=phase,
        ))


class CloudUploadService:
    """Upload files to S3-compatible disks and report progress."""

    def __init__(
        self,
        settings: Settings,
        notifier: ProgressNotifier | None = None,
        client_factory: S3ClientFactory | None = None,
    ) -> None:
        self.settings = settings
        self.notifier = notifier
        self.client_factory = client_factory or _default_client

    async def upload_with_progress(
        self,
        file: UploadedFile,
        disk: str,
        directory: str,
        filename: str,
        user_id: int,
        session_id: str | None,
        visibility: str = Visibility.PUBLIC,
    ) -> dict[str, Any]:
        """
        Upload ``file`` to ``disk`` at ``directory/filename``.

        Returns ``{"path", "url", "etag"}``.

        Raises:
            StorageError: The disk is not S3-backed or the transfer failed.
        """
        config = self.settings.disk_config(disk)
        if config.driver != "s3":
            raise StorageError(f"Disk '{disk}' is not a valid S3 disk")

        directory = directory.strip("/")
        key = f"{directory}/{filename}" if directory else filename
        reporter = UploadProgressReporter(
            self.notifier, user_id, session_id, filename, file.size,
        )

        try:
            client = self.client_factory(config)
            return await asyncio.to_thread(
                self._upload, client, config, file, key, visibility, reporter,
            )
        except Exception as exc:
            raise StorageError(f"Cloud upload failed: {exc}") from exc

    def _upload(
        self,
        client: Any,
        config: DiskConfig,
        file: UploadedFile,
        key: str,
        visibility: str,
        reporter: UploadProgressReporter,
    ) -> dict[str, Any]:
        extra_args = {
            "ACL": "public-read" if visibility == Visibility.PUBLIC else "private",
            "ContentType": file.mime_type,
        }
        transfer_config = TransferConfig(multipart_threshold=MULTIPART_THRESHOLD)

        logger.info(
            "Cloud upload started",
            disk=config.name,
            bucket=config.bucket,
            key=key,
            size=file.size,
            multipart=file.size > MULTIPART_THRESHOLD,
        )

        with file.open() as fh:
            client.upload_fileobj(
                fh,
                config.bucket,
                key,
                ExtraArgs=extra_args,
                Callback=reporter,
                Config=transfer_config,
            )
        reporter.complete()

        head = client.head_object(Bucket=config.bucket, Key=key)
        etag = (head.get("ETag") or "").strip('"') or None

        return {
            "path": key,
            "url": self._url(client, config, key, visibility),
            "etag": etag,
        }

    def _url(self, client: Any, config: DiskConfig, key: str, visibility: str) -> str:
        if visibility != Visibility.PUBLIC:
            return client.generate_presigned_url(
                "get_object",
                Params={"Bucket": config.bucket, "Key": key},
                ExpiresIn=PRESIGNED_URL_TTL,
            )

        if config.url:
            return f"{config.url.rstrip('/')}/{quote(key)}"
        if config.endpoint:
            return f"{config.endpoint.rstrip('/')}/{config.bucket}/{quote(key)}"
        return f"https://{config.bucket}.s3.{config.region}.amazonaws.com/{quote(key)}"


def _default_client(config: DiskConfig) -> Any:
    """Build a boto3 S3 client from a disk configuration."""
    return boto3.client(
        "s3",
        aws_access_key_id=config.key or None,
        aws_secret_access_key=config.secret or None,
        region_name=config.region or None,
        endpoint_url=config.endpoint or None,
        config=BotoConfig(
            s3={"addressing_style": "path" if config.use_path_style_endpoint else "auto"},
        ),
    )
