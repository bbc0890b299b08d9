"""REST API for tracking users, their expenses and expense categories."""

__all__ = [
    "config",
    "logging",
    "database",
    "models",
    "schemas",
    "crud",
    "server",
]
