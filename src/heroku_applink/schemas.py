"""Request and response bodies, one type per endpoint.

Each request type owns its ``to_json`` mapping and each response type its
``from_json`` decoding, so wire field names live in exactly one place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

# ----------------------------------------------------------------------
# Authorization service
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class UserAuthPayload:
    access_token: str
    user_id: str
    username: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> UserAuthPayload:
        return cls(
            access_token=data["accessToken"],
            user_id=data["userId"],
            username=data["username"],
        )


@dataclass(frozen=True)
class OrgPayload:
    id: str
    instance_url: str
    api_version: str
    type: str
    user_auth: UserAuthPayload

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> OrgPayload:
        return cls(
            id=data["id"],
            instance_url=data["instanceUrl"],
            api_version=data["apiVersion"],
            type=data.get("type") or "",
            user_auth=UserAuthPayload.from_json(data["userAuth"]),
        )


@dataclass(frozen=True)
class AuthorizationResponse:
    org: OrgPayload

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> AuthorizationResponse:
        return cls(org=OrgPayload.from_json(data["org"]))


@dataclass(frozen=True)
class ErrorResponse:
    title: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def from_json(cls, data: Any) -> ErrorResponse:
        if not isinstance(data, dict):
            return cls()
        return cls(title=data.get("title"), detail=data.get("detail"))

    @property
    def is_complete(self) -> bool:
        return bool((self.title or "").strip() and (self.detail or "").strip())


# ----------------------------------------------------------------------
# Composite graph
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class CompositeGraphSubrequest:
    reference_id: str
    method: str
    url: str
    body: Optional[Dict[str, Any]] = None

    def to_json(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "referenceId": self.reference_id,
            "method": self.method,
            "url": self.url,
        }
        if self.body is not None:
            out["body"] = self.body
        return out


@dataclass(frozen=True)
class CompositeGraphRequest:
    graph_id: str
    subrequests: List[CompositeGraphSubrequest] = field(default_factory=list)

    def to_json(self) -> Dict[str, Any]:
        return {
            "graphs": [
                {
                    "graphId": self.graph_id,
                    "compositeRequest": [s.to_json() for s in self.subrequests],
                }
            ]
        }


@dataclass(frozen=True)
class CompositeGraphSubresponse:
    reference_id: str
    http_status_code: int
    body: Any = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> CompositeGraphSubresponse:
        return cls(
            reference_id=data["referenceId"],
            http_status_code=int(data["httpStatusCode"]),
            body=data.get("body"),
        )

    @property
    def error_message(self) -> str:
        body = self.body
        if isinstance(body, list) and body and isinstance(body[0], dict):
            body = body[0]
        if isinstance(body, dict) and "message" in body:
            return str(body["message"])
        return str(body)


@dataclass(frozen=True)
class CompositeGraphResponse:
    graph_id: str
    is_successful: bool
    subresponses: List[CompositeGraphSubresponse]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> CompositeGraphResponse:
        graph = data["graphs"][0]
        composite = graph["graphResponse"]["compositeResponse"]
        return cls(
            graph_id=graph.get("graphId", ""),
            is_successful=bool(graph.get("isSuccessful", True)),
            subresponses=[CompositeGraphSubresponse.from_json(item) for item in composite],
        )


# ----------------------------------------------------------------------
# Bulk API v2
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class CreateIngestJobRequest:
    object_name: str
    operation: str = "insert"
    content_type: str = "CSV"
    # Our CSV writer terminates rows with \r\n
    line_ending: str = "CRLF"

    def to_json(self) -> Dict[str, Any]:
        return {
            "object": self.object_name,
            "operation": self.operation,
            "contentType": self.content_type,
            "lineEnding": self.line_ending,
        }


@dataclass(frozen=True)
class CreateQueryJobRequest:
    query: str
    operation: str = "query"

    def to_json(self) -> Dict[str, Any]:
        return {"operation": self.operation, "query": self.query}


@dataclass(frozen=True)
class JobStateRequest:
    state: str

    def to_json(self) -> Dict[str, Any]:
        return {"state": self.state}


@dataclass(frozen=True)
class JobCreatedResponse:
    id: str

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> JobCreatedResponse:
        return cls(id=data["id"])


# ----------------------------------------------------------------------
# Data Cloud
# ----------------------------------------------------------------------


@dataclass(frozen=True)
class DataCloudQueryRequest:
    sql: str

    def to_json(self) -> Dict[str, Any]:
        return {"sql": self.sql}


@dataclass(frozen=True)
class DataCloudQueryResponse:
    """One batch of Data Cloud query rows; ``next_batch_id`` is None on the last batch."""

    data: List[Any]
    metadata: Dict[str, Any]
    row_count: int
    done: bool
    next_batch_id: Optional[str] = None

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> DataCloudQueryResponse:
        rows = data.get("data") or []
        next_batch_id = data.get("nextBatchId") or None
        return cls(
            data=list(rows),
            metadata=dict(data.get("metadata") or {}),
            row_count=int(data.get("rowCount", len(rows))),
            done=bool(data.get("done", next_batch_id is None)),
            next_batch_id=next_batch_id,
        )


@dataclass(frozen=True)
class DataCloudUpsertResponse:
    accepted: bool
    body: Dict[str, Any]

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> DataCloudUpsertResponse:
        return cls(accepted=bool(data.get("accepted", False)), body=dict(data))
