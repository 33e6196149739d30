"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, Action, Comment, Milestone)
- validation.py: text and deadline checks shared by the actions
- guard.py: who may perform which action
- lifecycle.py: the state machine (create/accept/edit/reassign/complete/approve/delete)
- task_store.py: SQLite-backed storage with optimistic versioning
- task_api.py: comments and read-side queries
- milestone_api.py: staff-only milestones
"""
