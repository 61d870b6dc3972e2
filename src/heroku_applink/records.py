"""Record payloads and SOQL query result mapping for the Data API."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

_ID_KEYS = ("id", "Id", "ID", "iD")


@dataclass
class Record:
    """Base record payload used for create/update operations."""

    type: str
    fields: Dict[str, Any] = field(default_factory=dict)
    binary_fields: Optional[Dict[str, bytes]] = None

    def to_body(self) -> Dict[str, Any]:
        """Return a request body: a copy of ``fields`` plus base64 binary fields."""
        body = dict(self.fields)
        lowered = {k.lower() for k in body}
        for name, data in (self.binary_fields or {}).items():
            if name.lower() in lowered:
                raise ValueError(f"{name} provided in both fields and binary_fields of {self.type}")
            body[name] = base64.b64encode(data).decode("ascii")
        return body


class RecordForCreate(Record):
    """Record payload for create operations."""


class RecordForUpdate(Record):
    """Record payload for update operations; ``fields`` must carry the record Id."""

    def split_id(self) -> Tuple[str, Dict[str, Any]]:
        """Return (id, body without the id key). The caller's fields are left untouched."""
        body = self.to_body()
        for key in _ID_KEYS:
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                del body[key]
                return value, body
        raise ValueError("Record fields must include id")


@dataclass(frozen=True)
class RecordModificationResult:
    id: str


@dataclass
class QueriedRecord:
    """A record returned by SOQL queries."""

    type: str
    fields: Dict[str, Any] = field(default_factory=dict)
    sub_query_results: Optional[Dict[str, RecordQueryResult]] = None

    def get(self, name: str, default: Any = None) -> Any:
        """Case-insensitive field lookup, as SOQL field names are."""
        if name in self.fields:
            return self.fields[name]
        lowered = name.lower()
        for key, value in self.fields.items():
            if key.lower() == lowered:
                return value
        return default

    def sub_query(self, relationship: str) -> Optional[RecordQueryResult]:
        lowered = relationship.lower()
        for key, value in (self.sub_query_results or {}).items():
            if key.lower() == lowered:
                return value
        return None


@dataclass
class RecordQueryResult:
    """One page of SOQL results."""

    done: bool
    total_size: int
    records: List[QueriedRecord] = field(default_factory=list)
    next_records_url: Optional[str] = None


def _record_type(row: Mapping[str, Any]) -> str:
    attrs = row.get("attributes")
    if isinstance(attrs, dict):
        return attrs.get("type") or ""
    return ""


def _is_subquery(value: Mapping[str, Any]) -> bool:
    return isinstance(value.get("records"), list) and "totalSize" in value


def map_record(row: Mapping[str, Any]) -> QueriedRecord:
    """Map one JSON query row to a QueriedRecord.

    - ``attributes`` is dropped after reading the type.
    - Parent relationships (objects with ``attributes``) become nested records.
    - Child relationships (objects with ``records``) become subquery results.
    - Everything else, including nulls and compound fields, is kept as-is.
    """
    fields: Dict[str, Any] = {}
    sub_queries: Dict[str, RecordQueryResult] = {}

    for key, value in row.items():
        if key == "attributes":
            continue
        if isinstance(value, dict) and "attributes" in value:
            fields[key] = map_record(value)
        elif isinstance(value, dict) and _is_subquery(value):
            sub_queries[key] = map_query_response(value)
        else:
            fields[key] = value

    return QueriedRecord(
        type=_record_type(row),
        fields=fields,
        sub_query_results=sub_queries or None,
    )


def map_query_response(payload: Mapping[str, Any]) -> RecordQueryResult:
    """Map a ``/query`` response body (or an embedded subquery) to RecordQueryResult."""
    return RecordQueryResult(
        done=bool(payload.get("done", True)),
        total_size=int(payload.get("totalSize", 0)),
        records=[map_record(r) for r in payload.get("records") or []],
        next_records_url=payload.get("nextRecordsUrl"),
    )
