"""Key-value storage entry model."""
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from app.db.base import Base


class StorageEntry(Base):
    """One collection of records stored as a JSON array under a fixed key."""

    __tablename__ = "storage_entries"

    key = Column(String(64), primary_key=True)
    value = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
