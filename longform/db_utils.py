"""Database helper utilities for ensuring schema consistency."""
from __future__ import annotations

from sqlalchemy import inspect

from .extensions import db


def ensure_database_schema() -> None:
    """Create the content table when it is missing.

    The function is light-weight so it can run on every application start;
    schema changes beyond that belong in Flask-Migrate revisions.
    """

    inspector = inspect(db.engine)
    if "content_records" in inspector.get_table_names():
        return

    # Import locally to avoid circular import issues during application setup.
    from .models import ContentRecord

    ContentRecord.__table__.create(bind=db.engine)
