"""Persistence layer: engine, sessions and repositories."""

from refcredit.storage.db import Base, Database, db

__all__ = ["Base", "Database", "db"]
