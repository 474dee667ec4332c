"""Shared constants and enums used across the application."""

from enum import StrEnum


class StorageDisk(StrEnum):
    """Named storage targets an upload can be written to."""

    LOCAL = "local"
    PUBLIC = "public"
    SPACES = "spaces"
    S3 = "s3"
    R2 = "r2"

    @property
    def label(self) -> str:
        return {
            StorageDisk.LOCAL: "Local Storage",
            StorageDisk.PUBLIC: "Public Storage",
            StorageDisk.SPACES: "DigitalOcean Spaces",
            StorageDisk.S3: "Amazon S3",
            StorageDisk.R2: "Cloudflare R2",
        }[self]

    @property
    def is_cloud(self) -> bool:
        return self in (StorageDisk.SPACES, StorageDisk.S3, StorageDisk.R2)


class AllowedImageType(StrEnum):
    """Image formats accepted by the validation step."""

    JPEG = "jpeg"
    JPG = "jpg"
    PNG = "png"
    GIF = "gif"
    WEBP = "webp"
    SVG = "svg"
    BMP = "bmp"
    TIFF = "tiff"

    @property
    def mime_type(self) -> str:
        return _IMAGE_MIME_TYPES[self]

    @property
    def extensions(self) -> tuple[str, ...]:
        if self in (AllowedImageType.JPEG, AllowedImageType.JPG):
            return ("jpg", "jpeg")
        if self == AllowedImageType.TIFF:
            return ("tiff", "tif")
        return (self.value,)

    @classmethod
    def from_mime_type(cls, mime_type: str) -> "AllowedImageType | None":
        for image_type in cls:
            if image_type.mime_type == mime_type:
                return image_type
        return None

    @classmethod
    def all_mime_types(cls) -> list[str]:
        return list(dict.fromkeys(t.mime_type for t in cls))

    @classmethod
    def all_extensions(cls) -> list[str]:
        return list(dict.fromkeys(ext for t in cls for ext in t.extensions))


_IMAGE_MIME_TYPES = {
    AllowedImageType.JPEG: "image/jpeg",
    AllowedImageType.JPG: "image/jpeg",
    AllowedImageType.PNG: "image/png",
    AllowedImageType.GIF: "image/gif",
    AllowedImageType.WEBP: "image/webp",
    AllowedImageType.SVG: "image/svg+xml",
    AllowedImageType.BMP: "image/bmp",
    AllowedImageType.TIFF: "image/tiff",
}


class Visibility(StrEnum):
    """Access level applied to a stored object."""

    PUBLIC = "public"
    PRIVATE = "private"


class DuplicateAction(StrEnum):
    """What the duplicate-detection step does when a hash already exists."""

    REJECT = "reject"
    SKIP = "skip"
    RENAME = "rename"


class DuplicateScope(StrEnum):
    """Catalog slice searched for duplicate content."""

    USER = "user"
    GLOBAL = "global"


class UploadPhase(StrEnum):
    """Phase reported with cloud upload progress events."""

    UPLOADING = "uploading"
    COMPLETED = "completed"


# Metadata keys that describe the stored artifact itself and are not
# copied into the catalog metadata blob.
TRANSIENT_METADATA_KEYS = frozenset({"stored_path", "filename", "url", "disk", "processed_at"})
