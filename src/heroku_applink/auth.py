"""Resolve an org authorization from the Heroku AppLink add-on."""

from __future__ import annotations

import logging
import os
import threading
from typing import Mapping, Optional
from urllib.parse import quote

import requests

from .config import AddonConfig, default_addon_name, resolve_addon_config
from .exceptions import AuthorizationError
from .org import Org
from .rest import DEFAULT_TIMEOUT, JSON_CONTENT_TYPE, is_success, raise_if_cancelled
from .schemas import AuthorizationResponse, ErrorResponse

_logger = logging.getLogger(__name__)

# One retry, no delay
MAX_ATTEMPTS = 2


class AuthorizationClient:
    """Exchanges a developer name for an Org using AppLink add-on config."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.env = os.environ if env is None else env
        self.session = session or requests.Session()
        self.timeout = timeout

    def resolve_config(self, attachment_or_url: Optional[str] = None) -> AddonConfig:
        return resolve_addon_config(attachment_or_url or default_addon_name(self.env), self.env)

    def get_authorization(
        self,
        developer_name: str,
        attachment_or_url: Optional[str] = None,
        *,
        cancel: Optional[threading.Event] = None,
    ) -> Org:
        """Return the Org authorized for ``developer_name``.

        ``attachment_or_url`` is an attachment name, a color (e.g. ``PURPLE``)
        or the attachment's full API URL; it defaults to the add-on name.
        """
        if not developer_name or not developer_name.strip():
            raise ValueError("Developer name not provided")

        cfg = self.resolve_config(attachment_or_url)
        url = f"{cfg.api_url.rstrip('/')}/authorizations/{quote(developer_name, safe='')}"
        headers = {
            "Authorization": f"Bearer {cfg.token}",
            "X-App-UUID": cfg.app_uuid,
            "Content-Type": JSON_CONTENT_TYPE,
        }

        r: Optional[requests.Response] = None
        for attempt in range(1, MAX_ATTEMPTS + 1):
            raise_if_cancelled(cancel)
            try:
                r = self.session.get(url, headers=headers, timeout=self.timeout)
            except requests.RequestException as e:
                _logger.warning("Authorization request error (attempt %d/%d): %s", attempt, MAX_ATTEMPTS, e)
                if attempt == MAX_ATTEMPTS:
                    raise
                continue

            if is_success(r.status_code):
                payload = AuthorizationResponse.from_json(r.json())
                _logger.info("Authorized %s for org %s", developer_name, payload.org.id)
                return self._to_org(payload)

            _logger.warning(
                "Authorization HTTP %s (attempt %d/%d)", r.status_code, attempt, MAX_ATTEMPTS
            )

        raise self._error_from(r)

    def _to_org(self, payload: AuthorizationResponse) -> Org:
        org = payload.org
        return Org(
            access_token=org.user_auth.access_token,
            api_version=org.api_version,
            namespace=None,
            org_id=org.id,
            domain_url=org.instance_url,
            user_id=org.user_auth.user_id,
            username=org.user_auth.username,
            org_type=org.type,
            session=self.session,
            timeout=self.timeout,
        )

    @staticmethod
    def _error_from(r: Optional[requests.Response]) -> AuthorizationError:
        if r is None:
            return AuthorizationError("Unable to get authorization")
        try:
            err = ErrorResponse.from_json(r.json())
        except ValueError:
            err = ErrorResponse()
        if err.is_complete:
            return AuthorizationError(
                f"{err.title} - {err.detail}",
                status_code=r.status_code,
                title=err.title,
                detail=err.detail,
            )
        return AuthorizationError(
            f"Unable to get authorization (HTTP {r.status_code})", status_code=r.status_code
        )


def get_authorization(
    developer_name: str,
    attachment_or_url: Optional[str] = None,
    *,
    env: Optional[Mapping[str, str]] = None,
    session: Optional[requests.Session] = None,
    timeout: float = DEFAULT_TIMEOUT,
    cancel: Optional[threading.Event] = None,
) -> Org:
    """Convenience wrapper around AuthorizationClient.get_authorization."""
    client = AuthorizationClient(env, session=session, timeout=timeout)
    return client.get_authorization(developer_name, attachment_or_url, cancel=cancel)
