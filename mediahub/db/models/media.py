"""
Media — one row per stored upload (the catalog).

Created by the save_to_database step.  ``file_hash`` is indexed for the
duplicate-detection lookup but deliberately not unique: the ``rename``
duplicate action stores a second copy of the same content.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from mediahub.db.models.base import Base, utcnow


class Media(Base):
    __tablename__ = "media"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # ── File identity ─────────────────────────
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(1000), nullable=False)
    directory: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    disk: Mapped[str] = mapped_column(String(50), nullable=False)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Content ───────────────────────────────
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    mime_type: Mapped[str] = mapped_column(String(255), nullable=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    file_hash: Mapped[Optional[str]] = mapped_column(String(128), nullable=True, index=True)

    # Column is "metadata"; the attribute name is reserved by DeclarativeBase
    metadata_: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialise for API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "original_name": self.original_name,
            "path": self.path,
            "directory": self.directory,
            "disk": self.disk,
            "url": self.url,
            "size": self.size,
            "mime_type": self.mime_type,
            "is_public": self.is_public,
            "width": self.width,
            "height": self.height,
            "file_hash": self.file_hash,
            "metadata": self.metadata_,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:
        return f"<Media id={self.id} {self.name} disk={self.disk} size={self.size}>"
