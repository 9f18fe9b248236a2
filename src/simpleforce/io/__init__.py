from .api import delete, describe, fetch, insert, reload, update, upsert

__all__ = [
    "delete",
    "describe",
    "fetch",
    "insert",
    "reload",
    "update",
    "upsert",
]
