"""
SQLAlchemy-backed record store.

Used for local development and the test suite. Each record is one
``StoredRecord`` row; filters are evaluated in Python with
``Formula.matches`` after loading the table's rows, which is fine for the
table sizes a single weekly menu produces.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..models import StoredRecord
from .base import Record, RecordNotFoundError, RecordStore, StoreError
from .formulas import Formula

logger = logging.getLogger(__name__)


def new_record_id() -> str:
    """Generate an Airtable-style record id ("rec" + 14 characters)."""
    return "rec" + uuid.uuid4().hex[:14]


class SqlRecordStore(RecordStore):
    """
    Record store keeping every table in one ``stored_records`` table.

    Args:
        session_factory: sessionmaker bound to the target engine
    """

    backend_name = "sql"

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @staticmethod
    def _to_record(row: StoredRecord) -> Record:
        return Record(id=row.record_id, fields=dict(row.fields or {}))

    def _get_row(self, db: Session, table: str, record_id: str) -> Optional[StoredRecord]:
        return (
            db.query(StoredRecord)
            .filter(StoredRecord.table_name == table, StoredRecord.record_id == record_id)
            .one_or_none()
        )

    def list(
        self,
        table: str,
        formula: Optional[Formula] = None,
        max_records: Optional[int] = None,
    ) -> List[Record]:
        try:
            with self.session_factory() as db:
                rows = (
                    db.query(StoredRecord)
                    .filter(StoredRecord.table_name == table)
                    .order_by(StoredRecord.seq)
                    .all()
                )
                records = [self._to_record(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreError(str(e), operation="list", table=table) from e

        if formula is not None:
            records = [r for r in records if formula.matches(r)]
        if max_records:
            records = records[:max_records]
        return records

    def find(self, table: str, record_id: str) -> Record:
        try:
            with self.session_factory() as db:
                row = self._get_row(db, table, record_id)
                if row is None:
                    raise RecordNotFoundError("Record not found", operation="find", table=table)
                return self._to_record(row)
        except SQLAlchemyError as e:
            raise StoreError(str(e), operation="find", table=table) from e

    def create(self, table: str, rows: Sequence[Dict[str, Any]]) -> List[Record]:
        try:
            with self.session_factory() as db:
                created = [
                    StoredRecord(record_id=new_record_id(), table_name=table, fields=dict(fields))
                    for fields in rows
                ]
                db.add_all(created)
                db.commit()
                return [self._to_record(row) for row in created]
        except SQLAlchemyError as e:
            raise StoreError(str(e), operation="create", table=table) from e

    def update(self, table: str, record_id: str, fields: Dict[str, Any]) -> Record:
        try:
            with self.session_factory() as db:
                row = self._get_row(db, table, record_id)
                if row is None:
                    raise RecordNotFoundError("Record not found", operation="update", table=table)
                merged = dict(row.fields or {})
                merged.update(fields)
                # Assign a fresh dict so the JSON column is flagged dirty
                row.fields = merged
                db.commit()
                return self._to_record(row)
        except SQLAlchemyError as e:
            raise StoreError(str(e), operation="update", table=table) from e

    def delete(self, table: str, record_ids: Sequence[str]) -> List[str]:
        try:
            with self.session_factory() as db:
                rows = (
                    db.query(StoredRecord)
                    .filter(
                        StoredRecord.table_name == table,
                        StoredRecord.record_id.in_(list(record_ids)),
                    )
                    .all()
                )
                deleted = [row.record_id for row in rows]
                for row in rows:
                    db.delete(row)
                db.commit()
        except SQLAlchemyError as e:
            raise StoreError(str(e), operation="delete", table=table) from e

        logger.debug("Deleted %d records from %s", len(deleted), table)
        return deleted
