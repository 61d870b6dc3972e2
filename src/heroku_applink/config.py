"""Resolve Heroku AppLink add-on configuration from environment variables.

An app with the AppLink add-on attached gets, per attachment::

    HEROKU_APP_ID=<app uuid>
    <ATTACHMENT>_API_URL=https://...
    <ATTACHMENT>_TOKEN=...

or, for color-suffixed attachments, ``<ADDON>_<COLOR>_API_URL`` /
``<ADDON>_<COLOR>_TOKEN`` where ``<ADDON>`` defaults to ``HEROKU_APPLINK``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import urlparse

from .exceptions import ConfigurationError

_logger = logging.getLogger(__name__)

APP_ID_VAR = "HEROKU_APP_ID"
ADDON_NAME_VAR = "HEROKU_APPLINK_ADDON_NAME"
DEFAULT_ADDON_NAME = "HEROKU_APPLINK"

_API_URL_SUFFIX = "_API_URL"
_TOKEN_SUFFIX = "_TOKEN"


@dataclass(frozen=True)
class AddonConfig:
    """Endpoint and credentials of one AppLink add-on attachment."""

    api_url: str
    token: str
    app_uuid: str

    @classmethod
    def from_env(
        cls, attachment_or_url: Optional[str] = None, env: Optional[Mapping[str, str]] = None
    ) -> AddonConfig:
        """Load configuration for an attachment name, color or API URL."""
        env = os.environ if env is None else env
        return resolve_addon_config(attachment_or_url or default_addon_name(env), env)


def default_addon_name(env: Optional[Mapping[str, str]] = None) -> str:
    env = os.environ if env is None else env
    return env.get(ADDON_NAME_VAR) or DEFAULT_ADDON_NAME


def is_absolute_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme and parsed.netloc)


def resolve_addon_config(attachment_or_url: str, env: Mapping[str, str]) -> AddonConfig:
    if is_absolute_url(attachment_or_url):
        return resolve_by_url(attachment_or_url, env)
    return resolve_by_attachment_or_color(attachment_or_url, env)


def _require_app_uuid(env: Mapping[str, str]) -> str:
    app_uuid = (env.get(APP_ID_VAR) or "").strip()
    if not app_uuid:
        raise ConfigurationError("Heroku Applink app UUID not found", missing=[APP_ID_VAR])
    return app_uuid


def resolve_by_attachment_or_color(attachment_or_color: str, env: Mapping[str, str]) -> AddonConfig:
    """Look up ``<NAME>_API_URL``/``<NAME>_TOKEN``, then ``<ADDON>_<NAME>_*``."""
    app_uuid = _require_app_uuid(env)
    addon = default_addon_name(env)
    name = attachment_or_color.upper()

    api_url = (env.get(f"{name}{_API_URL_SUFFIX}") or "").strip()
    token = (env.get(f"{name}{_TOKEN_SUFFIX}") or "").strip()

    if not api_url or not token:
        _logger.debug("No attachment %s config; trying color under add-on %s", name, addon)
        api_url = (env.get(f"{addon}_{name}{_API_URL_SUFFIX}") or "").strip()
        token = (env.get(f"{addon}_{name}{_TOKEN_SUFFIX}") or "").strip()

    if not api_url or not token:
        raise ConfigurationError(
            f"Heroku Applink config not found under attachment or color {attachment_or_color}",
            missing=[f"{name}{_API_URL_SUFFIX}", f"{name}{_TOKEN_SUFFIX}"],
        )

    return AddonConfig(api_url=api_url, token=token, app_uuid=app_uuid)


def resolve_by_url(url: str, env: Mapping[str, str]) -> AddonConfig:
    """Find the ``*_API_URL`` variable whose value is ``url`` and pair it with its token."""
    app_uuid = _require_app_uuid(env)

    matched = next(
        (
            key
            for key, value in env.items()
            if key.endswith(_API_URL_SUFFIX) and (value or "").lower() == url.lower()
        ),
        None,
    )
    if matched is None:
        raise ConfigurationError(f"Heroku Applink config not found for API URL: {url}")

    prefix = matched[: -len(_API_URL_SUFFIX)]
    token = (env.get(f"{prefix}{_TOKEN_SUFFIX}") or "").strip()
    if not token:
        raise ConfigurationError(
            f"Heroku Applink token not found for API URL: {url}",
            missing=[f"{prefix}{_TOKEN_SUFFIX}"],
        )

    _logger.debug("Resolved API URL %s via %s", url, matched)
    return AddonConfig(api_url=env[matched], token=token, app_uuid=app_uuid)
