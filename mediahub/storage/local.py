"""
LocalDisk — filesystem-backed storage for the ``local`` and ``public`` disks.

Paths handed in and out are relative to the disk root, e.g.
``uploads/7/2026/10/3f2a….jpg``.  Private files are served through
signed, expiring URLs.
"""

from __future__ import annotations

import hashlib
import hmac
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from urllib.parse import quote, urlencode

from mediahub.core.constants import Visibility
from mediahub.core.logging import get_logger
from mediahub.pipeline.context import UploadedFile
from mediahub.pipeline.errors import StorageError

logger = get_logger(__name__)

_FILE_MODES = {
    Visibility.PUBLIC: 0o644,
    Visibility.PRIVATE: 0o600,
}


class LocalDisk:
    """One named local disk rooted at a directory."""

    def __init__(
        self,
        name: str,
        root: str | os.PathLike,
        base_url: str | None = None,
        signing_key: str = "",
    ) -> None:
        self.name = name
        self.root = Path(root).resolve()
        self.base_url = base_url.rstrip("/") if base_url else None
        self.signing_key = signing_key

    def path(self, relative: str) -> Path:
        """Absolute path for ``relative``; refuses paths escaping the root."""
        target = (self.root / relative.lstrip("/")).resolve()
        if target != self.root and self.root not in target.parents:
            raise StorageError(f"Path '{relative}' escapes disk '{self.name}'")
        return target

    def put_file_as(
        self,
        directory: str,
        file: UploadedFile,
        filename: str,
        visibility: str = Visibility.PUBLIC,
    ) -> str | None:
        """
        Copy ``file`` to ``directory/filename``.

        Never overwrites an existing file.  Returns the stored relative path,
        or None when the write failed or the target already exists.
        """
        directory = directory.strip("/")
        relative = f"{directory}/{filename}" if directory else filename
        target = self.path(relative)

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with file.open() as src, open(target, "xb") as dst:
                shutil.copyfileobj(src, dst)
            os.chmod(target, _FILE_MODES.get(Visibility(visibility), 0o600))
        except OSError as exc:
            logger.error(
                "Local write failed",
                disk=self.name,
                path=relative,
                error=str(exc),
            )
            return None

        return relative

    def exists(self, relative: str) -> bool:
        return self.path(relative).is_file()

    def delete(self, relative: str) -> bool:
        target = self.path(relative)
        if not target.is_file():
            return False
        target.unlink()
        return True

    def url(self, relative: str) -> str:
        if not self.base_url:
            raise StorageError(f"Disk '{self.name}' has no public URL configured")
        return f"{self.base_url}/{quote(relative.lstrip('/'))}"

    def temporary_url(self, relative: str, expires_at: datetime) -> str:
        """Signed URL that stops verifying after ``expires_at``."""
        expires = int(expires_at.timestamp())
        query = urlencode({
            "expires": expires,
            "signature": self._sign(relative, expires),
        })
        return f"{self.url(relative)}?{query}"

    def verify_signature(
        self,
        relative: str,
        expires: int,
        signature: str,
        now: datetime | None = None,
    ) -> bool:
        now = now or datetime.now(timezone.utc)
        if int(now.timestamp()) > expires:
            return False
        return hmac.compare_digest(self._sign(relative, expires), signature)

    def _sign(self, relative: str, expires: int) -> str:
        if not self.signing_key:
            raise StorageError(f"Disk '{self.name}' has no signing key configured")
        message = f"{self.name}:{relative.lstrip('/')}:{expires}".encode()
        return hmac.new(self.signing_key.encode(), message, hashlib.sha256).hexdigest()
