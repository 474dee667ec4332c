"""
Storage adapters — local disks, S3-compatible object storage, progress events.
"""

from mediahub.storage.cloud import CloudUploadService
from mediahub.storage.local import LocalDisk
from mediahub.storage.manager import StorageManager
from mediahub.storage.progress import CloudUploadProgress, ProgressNotifier

__all__ = [
    "CloudUploadProgress",
    "CloudUploadService",
    "LocalDisk",
    "ProgressNotifier",
    "StorageManager",
]
