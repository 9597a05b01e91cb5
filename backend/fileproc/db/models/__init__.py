"""
Models package: re-exports Base and all models.

Import models here so Alembic's `target_metadata = Base.metadata`
picks up every table automatically.

When adding a new model:
    1. Create `fileproc/db/models/<table_name>.py`
    2. Import it here
"""

from fileproc.db.models.base import Base
from fileproc.db.models.file_record import FileRecord

__all__ = [
    "Base",
    "FileRecord",
]
