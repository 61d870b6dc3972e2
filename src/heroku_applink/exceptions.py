from __future__ import annotations

from typing import List, Optional

import requests


class ApplinkError(RuntimeError):
    """Base class for errors raised by heroku_applink."""


class ConfigurationError(ApplinkError):
    """Raised when the required Heroku AppLink env vars are not present."""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.missing = missing or []
        super().__init__(message)


class AuthorizationError(ApplinkError):
    """Raised when the authorization service refuses or fails a request."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        title: Optional[str] = None,
        detail: Optional[str] = None,
    ):
        self.status_code = status_code
        self.title = title
        self.detail = detail
        super().__init__(message)


class ApiError(ApplinkError):
    """Non-success HTTP status from a Salesforce or Data Cloud endpoint."""

    def __init__(
        self,
        status_code: int,
        url: str,
        *,
        title: Optional[str] = None,
        detail: Optional[str] = None,
        response: Optional[requests.Response] = None,
    ):
        self.status_code = status_code
        self.url = url
        self.title = title
        self.detail = detail
        self.response = response
        parts = [p for p in (title, detail) if p]
        msg = f"HTTP {status_code} for {url}"
        if parts:
            msg += ": " + " - ".join(parts)
        super().__init__(msg)


class CompositeRequestError(ApplinkError):
    """A unit-of-work sub-request failed; the whole commit is reported as failed."""

    def __init__(self, reference_id: str, message: str):
        self.reference_id = reference_id
        self.message = message
        super().__init__(f"Composite subrequest {reference_id} failed: {message}")


class OperationCancelled(ApplinkError):
    """Raised when a cancel signal is set before a request is issued."""
