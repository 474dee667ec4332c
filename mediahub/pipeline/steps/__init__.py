"""Built-in upload steps."""

from mediahub.pipeline.steps.detect_duplicates import DetectDuplicatesStep
from mediahub.pipeline.steps.extract_image_metadata import ExtractImageMetadataStep
from mediahub.pipeline.steps.persist_record import PersistRecordStep
from mediahub.pipeline.steps.store_file import StoreFileStep
from mediahub.pipeline.steps.validate_file import ValidateFileStep

__all__ = [
    "DetectDuplicatesStep",
    "ExtractImageMetadataStep",
    "PersistRecordStep",
    "StoreFileStep",
    "ValidateFileStep",
]
