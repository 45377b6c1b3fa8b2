"""
Task subsystem.

Components:
- task_models.py: data structures (Task, SubTask, TaskStatus, Level)
- task_store.py: SQLite-backed ordered collection
- task_api.py: creation defaults, edits, guarded status changes, view filters
- task_export.py: JSON export/import of the whole collection
"""
