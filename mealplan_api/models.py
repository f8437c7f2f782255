from sqlalchemy import (
    Column,
    Integer,
    String,
    JSON,
    DateTime,
    Index,
    func,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class StoredRecord(Base):
    """One record of the local record store.

    Mirrors an Airtable row: an opaque ``rec...`` id, the table it belongs to
    and a free-form field map. ``seq`` preserves insertion order for listing.
    """
    __tablename__ = "stored_records"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(String, nullable=False, unique=True, index=True)
    table_name = Column(String, nullable=False, index=True)
    fields = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=True)

    __table_args__ = (
        Index("ix_stored_records_table_seq", "table_name", "seq"),
    )
