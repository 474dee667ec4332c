"""
mediahub — upload processing for the media library.

Uploaded files are validated, deduplicated, stored on a local disk or
S3-compatible object storage, and recorded in the media catalog by a
pluggable pipeline of steps (see ``mediahub.pipeline``).
"""

__version__ = "0.1.0"
