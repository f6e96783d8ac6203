from __future__ import annotations

from datetime import datetime

from .extensions import db


class ContentRecord(db.Model):
    """A named blob of generated content, addressed by ``<purpose>:<slug>``."""

    __tablename__ = "content_records"

    key = db.Column(db.String(512), primary_key=True)
    value = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:  # pragma: no cover - repr for debugging
        return f"<ContentRecord {self.key}>"
