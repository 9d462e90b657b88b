"""
Task subsystem.

Components:
- task_models.py: data structures and validated request payloads
- task_store.py: SQLite-backed task/list/label storage
- audit_store.py: append-only per-task change log
- change_detector.py: field-level diffs for a sparse update
- task_mutator.py: create/update pipeline (derived completed_at + audit)
- recurrence.py: next-occurrence arithmetic, eligibility, instance spawning
- views.py: today / next 7 days / upcoming / all / overdue
- task_api.py: small high-level helpers used by the CLI
"""
