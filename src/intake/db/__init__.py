"""Database helpers."""

from intake.db.client import db_cursor, get_connection

__all__ = ["db_cursor", "get_connection"]
