"""
Record store package.

The meal plan's system of record (customers, order lines, ingredients,
variants, the weekly menu) lives outside this service. This package defines
the interface the rest of the code talks to and two implementations:

- ``AirtableStore``: production backend over the Airtable REST API
- ``SqlRecordStore``: SQLAlchemy backend for local development and tests

Usage:
    from mealplan_api.store import build_record_store

    store = build_record_store()
    lines = store.list(ORDERS_TABLE, Eq(ORDER_TOKEN, token))
"""

from .base import Record, RecordNotFoundError, RecordStore, StoreError
from .formulas import And, Eq, Formula, Gt, IsBlank, RecordIdIn
from .airtable import AirtableStore
from .sql import SqlRecordStore


def build_record_store() -> RecordStore:
    """Create the record store selected by RECORD_STORE_BACKEND."""
    from .. import config

    if config.RECORD_STORE_BACKEND == "airtable":
        return AirtableStore(
            api_key=config.AIRTABLE_API_KEY,
            base_id=config.AIRTABLE_BASE_ID,
            api_url=config.AIRTABLE_API_URL,
            timeout=config.AIRTABLE_TIMEOUT_SECONDS,
        )
    if config.RECORD_STORE_BACKEND == "sql":
        from ..db import SessionLocal, init_db

        init_db()
        return SqlRecordStore(SessionLocal)
    raise ValueError(f"Unknown RECORD_STORE_BACKEND: {config.RECORD_STORE_BACKEND}")


__all__ = [
    "Record",
    "RecordStore",
    "StoreError",
    "RecordNotFoundError",
    "AirtableStore",
    "SqlRecordStore",
    "build_record_store",
    "Formula",
    "Eq",
    "Gt",
    "IsBlank",
    "RecordIdIn",
    "And",
]
