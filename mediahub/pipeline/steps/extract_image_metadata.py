"""
ExtractImageMetadataStep — dimensions, EXIF and colour summary via Pillow.

Extraction problems never fail the upload: an unreadable image simply
contributes no metadata, and an unexpected error is recorded under
``metadata_extraction_error`` before the chain continues.
"""

from __future__ import annotations

import asyncio
from typing import Any

from PIL import ExifTags, Image, UnidentifiedImageError
from pydantic import Field

from mediahub.core.logging import get_logger
from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import StepOptions, UploadStep

logger = get_logger(__name__)

COLOR_INFO_MAX_BYTES = 5 * 1024 * 1024
COLOR_SAMPLE_GRID = 50

# friendly name → (IFD, tag id)
_EXIF_FIELDS: dict[str, tuple[str, int]] = {
    "Camera": ("base", 0x010F),          # Make
    "Model": ("base", 0x0110),
    "DateTime": ("base", 0x0132),
    "Software": ("base", 0x0131),
    "Orientation": ("base", 0x0112),
    "XResolution": ("base", 0x011A),
    "YResolution": ("base", 0x011B),
    "ColorSpace": ("exif", 0xA001),
    "ExposureTime": ("exif", 0x829A),
    "FNumber": ("exif", 0x829D),
    "ISO": ("exif", 0x8827),             # ISOSpeedRatings
    "FocalLength": ("exif", 0x920A),
    "Flash": ("exif", 0x9209),
}

_GPS_LATITUDE_REF = 1
_GPS_LATITUDE = 2
_GPS_LONGITUDE_REF = 3
_GPS_LONGITUDE = 4


class ExtractImageMetadataOptions(StepOptions):
    extract_exif: bool = Field(True, description="Extract EXIF data from images")
    extract_dimensions: bool = Field(True, description="Extract image dimensions")
    extract_color_info: bool = Field(
        False, description="Extract color information (experimental)",
    )


class ExtractImageMetadataStep(UploadStep):
    """Read image properties into the upload metadata."""

    name = "extract_image_metadata"
    description = "Extracts metadata, EXIF data, and dimensions from image files"
    priority = 30
    options_model = ExtractImageMetadataOptions

    def can_handle(self, ctx: UploadContext) -> bool:
        return ctx.extract_metadata and ctx.is_image and self.is_enabled(ctx)

    async def execute(self, ctx: UploadContext) -> UploadResult:
        self.log(
            "Starting image metadata extraction",
            filename=ctx.original_filename,
            mime_type=ctx.mime_type,
        )

        try:
            opts: ExtractImageMetadataOptions = self.options(ctx)
            metadata = await asyncio.to_thread(self._extract, ctx, opts)
        except Exception as exc:
            logger.error(
                "Failed to extract image metadata",
                step=self.name,
                filename=ctx.original_filename,
                error=str(exc),
            )
            return self.success(
                ctx,
                f"Image metadata extraction failed but continuing: {exc}",
                {"metadata_extraction_error": str(exc)},
            )

        self.log(
            "Image metadata extraction completed",
            filename=ctx.original_filename,
            extracted_fields=list(metadata),
        )
        return self.success(ctx, "Image metadata extracted successfully", metadata)

    def _extract(self, ctx: UploadContext, opts: ExtractImageMetadataOptions) -> dict[str, Any]:
        metadata: dict[str, Any] = {}

        try:
            image = Image.open(ctx.file.path)
        except (UnidentifiedImageError, OSError) as exc:
            logger.warning(
                "Image could not be opened for metadata extraction",
                step=self.name,
                filename=ctx.original_filename,
                error=str(exc),
            )
            return metadata

        with image:
            if opts.extract_dimensions:
                metadata.update(extract_dimensions(image))

            if opts.extract_exif and "jpeg" in ctx.mime_type.lower():
                exif = extract_exif(image)
                if exif:
                    metadata["exif"] = exif

            if opts.extract_color_info and ctx.file_size <= COLOR_INFO_MAX_BYTES:
                color_info = extract_color_info(image)
                if color_info:
                    metadata["color_info"] = color_info

        return metadata


def extract_dimensions(image: Image.Image) -> dict[str, Any]:
    width, height = image.size
    if not width or not height:
        return {}

    return {
        "width": width,
        "height": height,
        "format": image.format,
        "aspect_ratio": round(width / height, 3),
        "megapixels": round(width * height / 1_000_000, 2),
    }


def extract_exif(image: Image.Image) -> dict[str, Any]:
    """Selected EXIF fields under friendly names, plus decimal GPS."""
    exif = image.getexif()
    if not exif:
        return {}

    ifds = {
        "base": exif,
        "exif": exif.get_ifd(ExifTags.IFD.Exif),
    }

    cleaned: dict[str, Any] = {}
    for friendly, (ifd, tag) in _EXIF_FIELDS.items():
        if tag not in ifds[ifd]:
            continue
        value = _exif_value(ifds[ifd][tag])
        if value is not None:
            cleaned[friendly] = value

    gps = exif.get_ifd(ExifTags.IFD.GPSInfo)
    if _GPS_LATITUDE in gps and _GPS_LONGITUDE in gps:
        cleaned["GPS"] = {
            "Latitude": gps_to_decimal(gps[_GPS_LATITUDE], gps.get(_GPS_LATITUDE_REF, "N")),
            "Longitude": gps_to_decimal(gps[_GPS_LONGITUDE], gps.get(_GPS_LONGITUDE_REF, "E")),
        }

    return cleaned


def gps_to_decimal(coordinate: Any, hemisphere: str) -> float:
    """Degrees/minutes/seconds triple to signed decimal degrees."""
    try:
        degrees, minutes, seconds = (float(part) for part in coordinate)
    except (TypeError, ValueError, ZeroDivisionError):
        return 0.0

    decimal = degrees + minutes / 60 + seconds / 3600
    if str(hemisphere).upper() in ("S", "W"):
        decimal = -decimal
    return round(decimal, 6)


def extract_color_info(image: Image.Image) -> dict[str, Any]:
    """Average colour over a sampled grid of at most 50×50 pixels."""
    rgb = image.convert("RGB")
    width, height = rgb.size
    samples = min(COLOR_SAMPLE_GRID, width, height)
    if samples <= 0:
        return {}

    x_step = max(1, width // samples)
    y_step = max(1, height // samples)

    totals = [0, 0, 0]
    count = 0
    for x in range(0, width, x_step):
        for y in range(0, height, y_step):
            r, g, b = rgb.getpixel((x, y))
            totals[0] += r
            totals[1] += g
            totals[2] += b
            count += 1

    r, g, b = (round(total / count) for total in totals)
    return {
        "average_color": {"r": r, "g": g, "b": b},
        "hex_color": f"#{r:02x}{g:02x}{b:02x}",
        "brightness": round((r * 0.299 + g * 0.587 + b * 0.114) / 255, 3),
        "sample_count": count,
    }


def _exif_value(value: Any) -> Any:
    """Coerce an EXIF value into something JSON can store; None drops it."""
    if isinstance(value, bytes):
        try:
            return value.decode("utf-8").rstrip("\x00")
        except UnicodeDecodeError:
            return None
    if isinstance(value, str):
        return value.rstrip("\x00")
    if isinstance(value, (tuple, list)):
        return [_exif_value(v) for v in value]
    if isinstance(value, (int, bool)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError, ZeroDivisionError):
        return str(value)
