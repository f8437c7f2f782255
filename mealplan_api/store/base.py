"""
Record store interface.

Every backend exposes the same five operations over named tables: filtered
list, find by id, create, update (PATCH semantics) and delete. Records are
addressed by opaque string ids; filters are ``Formula`` objects from
``mealplan_api.store.formulas``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .formulas import Formula


class StoreError(Exception):
    """
    Raised when a record store operation fails.

    Attributes:
        message: Human-readable error description
        operation: The operation that failed ("list", "find", "create", ...)
        table: Table the operation targeted
        status_code: HTTP status from the backend, when there is one
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.operation = operation
        self.table = table
        self.status_code = status_code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = []
        if self.operation:
            parts.append(f"[{self.operation}]")
        if self.table:
            parts.append(f"{self.table}:")
        parts.append(self.message)
        if self.status_code is not None:
            parts.append(f"(status_code={self.status_code})")
        return " ".join(parts)


class RecordNotFoundError(StoreError):
    """Raised by ``find`` when no record has the requested id."""


@dataclass
class Record:
    """A stored record: opaque id plus its field map."""
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)

    def get(self, name: str, default: Any = None) -> Any:
        value = self.fields.get(name)
        return default if value is None else value


class RecordStore(ABC):
    """Abstract record store used by the caches and the plan service."""

    backend_name = "abstract"

    @abstractmethod
    def list(
        self,
        table: str,
        formula: Optional[Formula] = None,
        max_records: Optional[int] = None,
    ) -> List[Record]:
        """Return records of ``table`` matching ``formula`` in insertion order."""

    @abstractmethod
    def find(self, table: str, record_id: str) -> Record:
        """Return one record or raise RecordNotFoundError."""

    @abstractmethod
    def create(self, table: str, rows: Sequence[Dict[str, Any]]) -> List[Record]:
        """Create one record per field map and return them with their ids."""

    @abstractmethod
    def update(self, table: str, record_id: str, fields: Dict[str, Any]) -> Record:
        """Overwrite the given fields only; other fields are left as they are."""

    @abstractmethod
    def delete(self, table: str, record_ids: Sequence[str]) -> List[str]:
        """Delete records and return the ids that were deleted."""

    def first(self, table: str, formula: Optional[Formula] = None) -> Optional[Record]:
        records = self.list(table, formula, max_records=1)
        return records[0] if records else None
