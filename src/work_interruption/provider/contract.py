# src/work_interruption/provider/contract.py

"""
Public contract of the task provider: paths, MIME types, default ordering.

Callers build addresses and interpret get_type() results with these constants.
"""

from __future__ import annotations

from ..tasks.task_models import COL_CATEGORY, COL_ID, COL_STARTED

SCHEME = "content"

PATH_TASK = "tasks"

# Index of the id segment in "/tasks/{id}".
PATH_POSITION_TASK_ID = 1

CONTENT_TYPE = "vnd.android.cursor.dir/vnd.workinterruption.task"
CONTENT_ITEM_TYPE = "vnd.android.cursor.item/vnd.workinterruption.task"

MIMETYPE_TEXT_PLAIN = "text/plain"

DEFAULT_SORT_ORDER = f"{COL_STARTED} DESC"

# Projection used by the text export: id, category, started.
READ_TASK_PROJECTION: tuple[str, ...] = (COL_ID, COL_CATEGORY, COL_STARTED)
