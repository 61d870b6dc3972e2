"""Accumulate create/update/delete operations for one composite graph request."""

from __future__ import annotations

import copy
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .schemas import CompositeGraphSubrequest

_logger = logging.getLogger(__name__)

VERSION_PLACEHOLDER = "{version}"
_SOBJECTS_TEMPLATE = "/services/data/v" + VERSION_PLACEHOLDER + "/sobjects/"


@dataclass(frozen=True)
class ReferenceId:
    """Opaque correlation id for one unit-of-work subrequest."""

    value: str

    @classmethod
    def new(cls) -> ReferenceId:
        # Composite referenceIds must start with a letter
        return cls("ref" + uuid.uuid4().hex)

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CompositeSubrequest:
    reference_id: ReferenceId
    method: str
    url_template: str
    body: Optional[Dict[str, Any]] = None
    # Id known at registration (update/delete); creates learn theirs from the response
    record_id: Optional[str] = None

    def build_url(self, api_version: str) -> str:
        return self.url_template.replace(VERSION_PLACEHOLDER, api_version)

    def to_schema(self, api_version: str) -> CompositeGraphSubrequest:
        return CompositeGraphSubrequest(
            reference_id=str(self.reference_id),
            method=self.method,
            url=self.build_url(api_version),
            body=self.body,
        )


class UnitOfWork:
    """Single-use batch of record operations, committed through DataApi.commit_unit_of_work."""

    def __init__(self) -> None:
        self._subrequests: List[CompositeSubrequest] = []
        self.committed = False

    @property
    def subrequests(self) -> List[CompositeSubrequest]:
        return list(self._subrequests)

    def __len__(self) -> int:
        return len(self._subrequests)

    def _add(self, subrequest: CompositeSubrequest) -> ReferenceId:
        if self.committed:
            raise RuntimeError("Unit of work has already been committed")
        self._subrequests.append(subrequest)
        _logger.debug(
            "Registered %s %s as %s",
            subrequest.method,
            subrequest.url_template,
            subrequest.reference_id,
        )
        return subrequest.reference_id

    def register_create(self, type: str, fields: Mapping[str, Any]) -> ReferenceId:
        return self._add(
            CompositeSubrequest(
                reference_id=ReferenceId.new(),
                method="POST",
                url_template=f"{_SOBJECTS_TEMPLATE}{type}",
                body=copy.deepcopy(dict(fields)),
            )
        )

    def register_update(self, type: str, id: str, fields: Mapping[str, Any]) -> ReferenceId:
        body = copy.deepcopy(dict(fields))
        body["Id"] = id
        return self._add(
            CompositeSubrequest(
                reference_id=ReferenceId.new(),
                method="PATCH",
                url_template=f"{_SOBJECTS_TEMPLATE}{type}/{id}",
                body=body,
                record_id=id,
            )
        )

    def register_delete(self, type: str, id: str) -> ReferenceId:
        return self._add(
            CompositeSubrequest(
                reference_id=ReferenceId.new(),
                method="DELETE",
                url_template=f"{_SOBJECTS_TEMPLATE}{type}/{id}",
                record_id=id,
            )
        )
