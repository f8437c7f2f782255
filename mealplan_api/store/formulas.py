"""
Filter expressions for record store queries.

Each ``Formula`` renders to Airtable formula syntax (``render()``) and can
also evaluate itself against a ``Record`` (``matches()``), which is how the
SQL backend filters rows. Keeping both in one object means the same query
code runs against either backend.

Example:
    >>> f = And(Eq("Unique ID", "abc123"), Gt("Quantity", 0))
    >>> f.render()
    "AND({Unique ID} = 'abc123', {Quantity} > 0)"
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Iterable, Sequence

if TYPE_CHECKING:
    from .base import Record


def quote(value: str) -> str:
    """Quote a string literal for a formula."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def field_ref(name: str) -> str:
    """Reference a field by name, escaping closing braces."""
    return "{" + name.replace("}", "\\}") + "}"


def literal(value: Any) -> str:
    if isinstance(value, bool):
        return "TRUE()" if value else "FALSE()"
    if isinstance(value, (int, float)):
        return repr(value)
    return quote(value)


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == []


def _as_number(value: Any) -> float:
    # Blank numeric cells compare as zero, same as in the Airtable UI
    if _is_blank(value):
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _as_text(value: Any) -> str:
    if _is_blank(value):
        return ""
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


class Formula(ABC):
    """Base class for filter expressions."""

    @abstractmethod
    def render(self) -> str:
        """Return the expression in Airtable formula syntax."""

    @abstractmethod
    def matches(self, record: "Record") -> bool:
        """Evaluate the expression against a record locally."""

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.render()}>"


class Eq(Formula):
    """Field equals a string, number or boolean."""

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value

    def render(self) -> str:
        return f"{field_ref(self.field)} = {literal(self.value)}"

    def matches(self, record: "Record") -> bool:
        actual = record.fields.get(self.field)
        if isinstance(self.value, bool):
            return bool(actual) is self.value
        if isinstance(self.value, (int, float)):
            return _as_number(actual) == float(self.value)
        return _as_text(actual) == str(self.value)


class Gt(Formula):
    """Numeric field greater than a number."""

    def __init__(self, field: str, value: float):
        self.field = field
        self.value = value

    def render(self) -> str:
        return f"{field_ref(self.field)} > {literal(self.value)}"

    def matches(self, record: "Record") -> bool:
        return _as_number(record.fields.get(self.field)) > float(self.value)


class IsBlank(Formula):
    """Field is empty."""

    def __init__(self, field: str):
        self.field = field

    def render(self) -> str:
        return f"{field_ref(self.field)} = BLANK()"

    def matches(self, record: "Record") -> bool:
        return _is_blank(record.fields.get(self.field))


class RecordIdIn(Formula):
    """Record id is one of the given ids."""

    def __init__(self, record_ids: Iterable[str]):
        self.record_ids = list(record_ids)

    def render(self) -> str:
        terms = [f"RECORD_ID() = {quote(rid)}" for rid in self.record_ids]
        if not terms:
            return "FALSE()"
        if len(terms) == 1:
            return terms[0]
        return f"OR({', '.join(terms)})"

    def matches(self, record: "Record") -> bool:
        return record.id in self.record_ids


class _Compound(Formula):
    def __init__(self, *terms: Formula):
        self.terms: Sequence[Formula] = [t for t in terms if t is not None]


class And(_Compound):
    def render(self) -> str:
        if not self.terms:
            return "TRUE()"
        if len(self.terms) == 1:
            return self.terms[0].render()
        return f"AND({', '.join(t.render() for t in self.terms)})"

    def matches(self, record: "Record") -> bool:
        return all(t.matches(record) for t in self.terms)
