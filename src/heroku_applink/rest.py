from __future__ import annotations

import logging
import threading
from typing import Any, Dict, Optional, Tuple

import requests

from .exceptions import ApiError, OperationCancelled

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
JSON_CONTENT_TYPE = "application/json"
CSV_CONTENT_TYPE = "text/csv"


def raise_if_cancelled(cancel: Optional[threading.Event]) -> None:
    """Raise OperationCancelled if ``cancel`` has been set."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("Operation cancelled before the request was sent")


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def decode_error_body(r: requests.Response) -> Tuple[Optional[str], Optional[str]]:
    """Return (title, detail) from an error response, best effort.

    AppLink answers ``{"title": ..., "detail": ...}``; the Salesforce REST
    API answers ``[{"errorCode": ..., "message": ...}]``.
    """
    try:
        payload = r.json()
    except ValueError:
        text = r.text
        return None, text or None

    if isinstance(payload, dict):
        title = payload.get("title") or payload.get("errorCode")
        detail = payload.get("detail") or payload.get("message")
        if title or detail:
            return title, detail
        return None, str(payload)
    if isinstance(payload, list):
        messages = []
        for item in payload:
            if isinstance(item, dict):
                code = item.get("errorCode")
                msg = item.get("message", "")
                messages.append(f"{code}: {msg}" if code else str(msg))
            else:
                messages.append(str(item))
        return None, "; ".join(messages) or None
    return None, str(payload)


def response_json(r: requests.Response) -> Any:
    """Decode a JSON body; empty bodies (204) decode to an empty dict."""
    if not r.content:
        return {}
    return r.json()


class RestClient:
    """Bearer-token REST plumbing shared by the Data, Bulk and Data Cloud helpers."""

    def __init__(
        self,
        access_token: str,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _url(self, url_or_path: str) -> str:
        if url_or_path.lower().startswith("http"):
            return url_or_path
        return f"{self.base_url}/{url_or_path.lstrip('/')}"

    # --------------------------- HTTP wrappers -----------------------

    def _get(self, url: str, **kwargs: Any) -> requests.Response:
        return self._request("GET", url, **kwargs)

    def _post(self, url: str, **kwargs: Any) -> requests.Response:
        return self._request("POST", url, **kwargs)

    def _put(self, url: str, **kwargs: Any) -> requests.Response:
        return self._request("PUT", url, **kwargs)

    def _patch(self, url: str, **kwargs: Any) -> requests.Response:
        return self._request("PATCH", url, **kwargs)

    def _delete(self, url: str, **kwargs: Any) -> requests.Response:
        return self._request("DELETE", url, **kwargs)

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        data: Optional[bytes] = None,
        headers: Optional[Dict[str, str]] = None,
        cancel: Optional[threading.Event] = None,
    ) -> requests.Response:
        """Send one authenticated request; non-2xx raises ApiError. No retries."""
        raise_if_cancelled(cancel)

        full_url = self._url(url)
        hdrs: Dict[str, str] = {"Authorization": f"Bearer {self.access_token}"}
        if json is not None:
            hdrs["Content-Type"] = JSON_CONTENT_TYPE
        if headers:
            hdrs.update(headers)

        _logger.debug("%s %s", method, full_url)
        r = self.session.request(
            method,
            full_url,
            params=params,
            json=json,
            data=data,
            headers=hdrs,
            timeout=self.timeout,
        )
        if is_success(r.status_code):
            return r

        title, detail = decode_error_body(r)
        _logger.error("HTTP %s error for %s %s: %s", r.status_code, method, full_url, detail)
        raise ApiError(r.status_code, full_url, title=title, detail=detail, response=r)
