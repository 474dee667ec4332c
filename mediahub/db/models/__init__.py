"""
Models package — re-exports Base and all models.

When adding a new model:
    1. Create `mediahub/db/models/<table_name>.py`
    2. Import it here
"""

from mediahub.db.models.base import Base
from mediahub.db.models.media import Media

__all__ = [
    "Base",
    "Media",
]
