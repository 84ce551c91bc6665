"""
Task subsystem.

Components:
- task_models.py: columns, Task, TaskValues (partial update), TaskCategory
- task_store.py: SQLite handle (schema + per-call connections)
- task_api.py: small high-level helpers used by the front end
"""
