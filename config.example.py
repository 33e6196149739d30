# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "ASSIGNFLOW_APP_NAME": "App display name (default: assignflow).",
    "ASSIGNFLOW_LOG_LEVEL": "Console logging level (default: INFO).",
    # Paths (gitignored)
    "ASSIGNFLOW_DATA_DIR": "Local data directory, also holds assignflow.log (default: .local/assignflow).",
    "ASSIGNFLOW_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
    "ASSIGNFLOW_USERS_DB_PATH": "UserStore SQLite path (default: <data_dir>/users.sqlite3).",
    # Workflow
    "ASSIGNFLOW_STAFF_ROLE": "Role allowed to create milestones (default: staff).",
    "ASSIGNFLOW_LIST_LIMIT": "Max rows printed by /tasks (default: 50).",
}
