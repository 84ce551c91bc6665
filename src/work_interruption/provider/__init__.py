"""
Task provider.

Components:
- uri_router.py: address parsing and classification (/tasks, /tasks/{id})
- query.py: projection allow-list, scoped selection, TaskCursor
- mutation.py: insert/update/delete + change events
- notifier.py: change notification dispatcher (+ asyncio bridge)
- exporter.py: text/plain export through a pipe
- task_provider.py: the facade callers use
"""
