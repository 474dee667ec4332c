"""
UploadContext — immutable state object threaded through every step.

A context is created once per upload request.  Steps never modify it:
every transition returns a new instance via ``with_metadata``,
``with_configuration`` or ``with_processing_state``.  The maps it
carries are exposed read-only so an accidental in-place write fails
loudly instead of leaking into the next step.
"""

from __future__ import annotations

import mimetypes
import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Any, BinaryIO

from mediahub.core.constants import StorageDisk

DEFAULT_MAX_SIZE_BYTES = 50 * 1024 * 1024
DEFAULT_MIME_TYPE = "application/octet-stream"


# ═══════════════════════════════════════════════════════════
#  UploadedFile — handle to the uploaded binary
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UploadedFile:
    """
    A file received from a client and parked on local disk.

    Args:
        path: Temporary location of the bytes on this machine.
        original_name: Filename as sent by the client.
        size: Byte size.
        mime_type: Declared MIME type.
    """

    path: str
    original_name: str
    size: int
    mime_type: str = DEFAULT_MIME_TYPE

    @classmethod
    def from_path(
        cls,
        path: str | os.PathLike,
        original_name: str | None = None,
        mime_type: str | None = None,
    ) -> UploadedFile:
        """Build a handle for an existing local file, guessing the MIME type."""
        path = Path(path)
        name = original_name or path.name
        guessed, _ = mimetypes.guess_type(name)
        return cls(
            path=str(path),
            original_name=name,
            size=path.stat().st_size,
            mime_type=mime_type or guessed or DEFAULT_MIME_TYPE,
        )

    @property
    def extension(self) -> str:
        """Client extension without the dot, e.g. ``jpg``.  Empty if none."""
        return Path(self.original_name).suffix.lstrip(".")

    @property
    def stem(self) -> str:
        """Client filename without its extension."""
        return Path(self.original_name).stem

    def open(self) -> BinaryIO:
        return open(self.path, "rb")


@dataclass(frozen=True)
class UploadUser:
    """Uploader identity.  Only ``id`` is required by the pipeline."""

    id: int
    name: str = ""
    email: str = ""


# ═══════════════════════════════════════════════════════════
#  UploadContext
# ═══════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UploadContext:
    """
    Carries one upload's inputs and the state accumulated by steps.

    ``metadata`` ends up in the catalog record; ``processing_state`` is
    scratch space for step-to-step signals that are never persisted.
    """

    # ─── Inputs ────────────────────────────────────────
    file: UploadedFile
    user: Any
    disk: StorageDisk
    directory: str

    # ─── Flags ─────────────────────────────────────────
    is_public: bool = True
    randomize_filename: bool = True
    extract_metadata: bool = True
    check_duplicates: bool = False

    # ─── Limits ────────────────────────────────────────
    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES
    allowed_mime_types: tuple[str, ...] = ()

    # ─── Accumulated state ─────────────────────────────
    metadata: Mapping[str, Any] = field(default_factory=dict)
    configuration: Mapping[str, Any] = field(default_factory=dict)
    session_id: str | None = None
    processing_state: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "disk", StorageDisk(self.disk))
        object.__setattr__(self, "allowed_mime_types", _as_tuple(self.allowed_mime_types))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))
        object.__setattr__(self, "configuration", MappingProxyType(dict(self.configuration)))
        object.__setattr__(self, "processing_state", MappingProxyType(dict(self.processing_state)))

    # ─── Copy-on-write transitions ─────────────────────

    def with_metadata(self, key: str, value: Any) -> UploadContext:
        """Return a new context with one metadata entry set."""
        return replace(self, metadata={**self.metadata, key: value})

    def with_configuration(self, config: Mapping[str, Any]) -> UploadContext:
        """Return a new context with ``config`` merged over the current configuration."""
        return replace(self, configuration={**self.configuration, **config})

    def with_processing_state(self, key: str, value: Any) -> UploadContext:
        """Return a new context with one processing-state entry set."""
        return replace(self, processing_state={**self.processing_state, key: value})

    # ─── File helpers ──────────────────────────────────

    @property
    def original_filename(self) -> str:
        return self.file.original_name

    @property
    def file_size(self) -> int:
        return self.file.size

    @property
    def mime_type(self) -> str:
        return self.file.mime_type or DEFAULT_MIME_TYPE

    @property
    def extension(self) -> str:
        return self.file.extension

    @property
    def is_image(self) -> bool:
        return self.mime_type.startswith("image/")

    # ─── Lookups ───────────────────────────────────────

    def get_metadata(self, key: str, default: Any = None) -> Any:
        return self.metadata.get(key, default)

    def get_configuration(self, key: str, default: Any = None) -> Any:
        value = self.configuration.get(key)
        return default if value is None else value

    def get_processing_state(self, key: str, default: Any = None) -> Any:
        value = self.processing_state.get(key)
        return default if value is None else value

    def to_summary_dict(self) -> dict[str, Any]:
        """Compact summary for logging."""
        return {
            "filename": self.original_filename,
            "size": self.file_size,
            "mime_type": self.mime_type,
            "user_id": getattr(self.user, "id", None),
            "disk": self.disk.value,
            "directory": self.directory,
            "session_id": self.session_id,
            "metadata_keys": list(self.metadata),
        }


def _as_tuple(values: Iterable[str] | None) -> tuple[str, ...]:
    if not values:
        return ()
    if isinstance(values, str):
        return (values,)
    return tuple(dict.fromkeys(values))
