from __future__ import annotations

import sys
from typing import Optional

import click

from .auth import get_authorization
from .exceptions import AuthorizationError, ConfigurationError
from .org import Org


def supports_unicode_emoji() -> bool:
    enc = getattr(sys.stdout, "encoding", "") or ""
    return "UTF-8" in enc.upper()


def connect_org(developer_name: str, attachment: Optional[str]) -> Org:
    """Resolve the org or exit with a readable message."""
    try:
        return get_authorization(developer_name, attachment)
    except ConfigurationError as e:
        msg = f"{e}\n\nSet HEROKU_APP_ID and the attachment's *_API_URL / *_TOKEN variables"
        if e.missing:
            msg += f" ({', '.join(e.missing)})"
        msg += ", or create a .env file with them."
        raise click.ClickException(msg) from e
    except AuthorizationError as e:
        raise click.ClickException(f"Authorization failed: {e}") from e


attachment_option = click.option(
    "--attachment",
    "attachment",
    default=None,
    help="Attachment name, color (e.g. PURPLE) or API URL; defaults to the add-on name.",
)
