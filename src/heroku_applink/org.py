from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional

import requests

from .bulk_api import BulkApi
from .data_api import DataApi
from .data_cloud_api import DataCloudApi
from .rest import DEFAULT_TIMEOUT, RestClient

_logger = logging.getLogger(__name__)

DATA_CLOUD_ORG_TYPES = {"datacloudorg"}


@dataclass(frozen=True)
class User:
    """Authenticated user returned with the org authorization."""

    id: str
    username: str


class Org:
    """Resolved org authorization with Data API, Bulk API and (optional) Data Cloud helpers."""

    def __init__(
        self,
        access_token: str,
        api_version: str,
        namespace: Optional[str],
        org_id: str,
        domain_url: str,
        user_id: str,
        username: str,
        org_type: Optional[str],
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        if not access_token:
            raise ValueError("access_token is required")
        if not api_version:
            raise ValueError("api_version is required")
        if not org_id:
            raise ValueError("org_id is required")

        self.access_token = access_token
        self.api_version = api_version.lstrip("vV")
        self.domain_url = (
            domain_url if domain_url.lower().startswith("http") else f"https://{domain_url}"
        ).rstrip("/")
        self.id = org_id
        self.namespace = "" if not namespace or namespace.strip().lower() == "null" else namespace
        self.org_type = org_type or ""
        self.user = User(id=user_id, username=username)

        self.session = session or requests.Session()
        self._rest = RestClient(access_token, self.domain_url, session=self.session, timeout=timeout)
        self.data_api = DataApi(
            access_token, self.api_version, self.domain_url, session=self.session, timeout=timeout
        )
        self.bulk_api = BulkApi(
            access_token, self.api_version, self.domain_url, session=self.session, timeout=timeout
        )
        self.data_cloud_api: Optional[DataCloudApi] = None
        if self.org_type.lower() in DATA_CLOUD_ORG_TYPES:
            self.data_cloud_api = DataCloudApi(
                access_token, self.domain_url, session=self.session, timeout=timeout
            )

    @property
    def is_data_cloud_org(self) -> bool:
        return self.data_cloud_api is not None

    def request(
        self,
        method: str,
        url_or_path: str,
        *,
        cancel: Optional[threading.Event] = None,
        **kwargs: Any,
    ) -> requests.Response:
        """Send an authenticated request to a full URL or a path under the org domain."""
        return self._rest._request(method, url_or_path, cancel=cancel, **kwargs)

    def __repr__(self) -> str:
        return (
            f"Org(id={self.id!r}, domain_url={self.domain_url!r}, "
            f"api_version={self.api_version!r}, org_type={self.org_type!r})"
        )
