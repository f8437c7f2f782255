"""
Airtable REST client implementing the record store interface.

Talks to the v0 REST API with a pooled ``requests.Session``:

- list:   GET    /{base}/{table}?filterByFormula=...&offset=...
- find:   GET    /{base}/{table}/{id}
- create: POST   /{base}/{table}          (10 records per request)
- update: PATCH  /{base}/{table}/{id}
- delete: DELETE /{base}/{table}?records[]=... (10 ids per request)

Failed calls are not retried here; callers decide whether a failure is
recoverable.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests
from requests.adapters import HTTPAdapter

from .base import Record, RecordNotFoundError, RecordStore, StoreError
from .formulas import Formula

logger = logging.getLogger(__name__)

# Airtable rejects write requests carrying more than 10 records
WRITE_BATCH_SIZE = 10

PAGE_SIZE = 100


def _chunks(items: Sequence[Any], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AirtableStore(RecordStore):
    """
    Record store backed by an Airtable base.

    Args:
        api_key: Personal access token
        base_id: Base identifier ("app...")
        api_url: API root, overridable for tests and proxies
        timeout: Per-request timeout in seconds
        session: Optional preconfigured requests.Session
    """

    backend_name = "airtable"

    POOL_CONNECTIONS = 10
    POOL_MAXSIZE = 20

    def __init__(
        self,
        api_key: str,
        base_id: str,
        api_url: str = "https://api.airtable.com/v0",
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        if not api_key or not base_id:
            raise ValueError("Airtable api_key and base_id are required")

        self.base_url = f"{api_url.rstrip('/')}/{base_id}"
        self.timeout = timeout

        if session is None:
            session = requests.Session()
            adapter = HTTPAdapter(
                pool_connections=self.POOL_CONNECTIONS,
                pool_maxsize=self.POOL_MAXSIZE,
            )
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })
        self.session = session

    # -------------------------------------------------------------------------
    # HTTP plumbing
    # -------------------------------------------------------------------------

    def _table_url(self, table: str, record_id: Optional[str] = None) -> str:
        url = f"{self.base_url}/{quote(table, safe='')}"
        if record_id:
            url = f"{url}/{quote(record_id, safe='')}"
        return url

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        table: str,
        **kwargs,
    ) -> Dict[str, Any]:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreError(str(e), operation=operation, table=table) from e

        if response.status_code == 404 and operation == "find":
            raise RecordNotFoundError(
                "Record not found", operation=operation, table=table, status_code=404
            )
        if not response.ok:
            body = response.text or ""
            if len(body) > 200:
                body = body[:200] + "..."
            raise StoreError(
                body or response.reason or "Request failed",
                operation=operation,
                table=table,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise StoreError("Invalid JSON in response", operation=operation, table=table) from e

    @staticmethod
    def _to_record(payload: Dict[str, Any]) -> Record:
        return Record(id=payload["id"], fields=payload.get("fields") or {})

    # -------------------------------------------------------------------------
    # RecordStore interface
    # -------------------------------------------------------------------------

    def list(
        self,
        table: str,
        formula: Optional[Formula] = None,
        max_records: Optional[int] = None,
    ) -> List[Record]:
        params: Dict[str, Any] = {"pageSize": PAGE_SIZE}
        if formula is not None:
            params["filterByFormula"] = formula.render()
        if max_records:
            params["maxRecords"] = max_records
            params["pageSize"] = min(PAGE_SIZE, max_records)

        records: List[Record] = []
        url = self._table_url(table)
        while True:
            payload = self._request("GET", url, "list", table, params=params)
            records.extend(self._to_record(r) for r in payload.get("records", []))
            offset = payload.get("offset")
            if not offset or (max_records and len(records) >= max_records):
                break
            params["offset"] = offset

        logger.debug("Listed %d records from %s", len(records), table)
        return records[:max_records] if max_records else records

    def find(self, table: str, record_id: str) -> Record:
        payload = self._request("GET", self._table_url(table, record_id), "find", table)
        return self._to_record(payload)

    def create(self, table: str, rows: Sequence[Dict[str, Any]]) -> List[Record]:
        created: List[Record] = []
        for chunk in _chunks(list(rows), WRITE_BATCH_SIZE):
            body = {"records": [{"fields": row} for row in chunk], "typecast": True}
            payload = self._request("POST", self._table_url(table), "create", table, json=body)
            created.extend(self._to_record(r) for r in payload.get("records", []))
        return created

    def update(self, table: str, record_id: str, fields: Dict[str, Any]) -> Record:
        body = {"fields": fields, "typecast": True}
        payload = self._request(
            "PATCH", self._table_url(table, record_id), "update", table, json=body
        )
        return self._to_record(payload)

    def delete(self, table: str, record_ids: Sequence[str]) -> List[str]:
        deleted: List[str] = []
        for chunk in _chunks(list(record_ids), WRITE_BATCH_SIZE):
            params = [("records[]", rid) for rid in chunk]
            payload = self._request(
                "DELETE", self._table_url(table), "delete", table, params=params
            )
            deleted.extend(r["id"] for r in payload.get("records", []) if r.get("deleted"))
        return deleted
