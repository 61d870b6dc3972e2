from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any, Dict, Optional, cast

import click
from click import Command

from . import __version__
from .cli_helpers import attachment_option, connect_org
from .command_bulk import bulk_ingest_cmd, bulk_query_cmd
from .env_loader import load_env_files
from .exceptions import ApiError
from .logging_config import configure_logging
from .records import QueriedRecord, RecordQueryResult

_logger = logging.getLogger(__name__)


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="heroku-applink")
@click.option(
    "-v",
    "--verbose",
    "loglevel",
    flag_value=logging.INFO,
    default=None,
    help="Enable INFO logs.",
)
@click.option(
    "-vv",
    "--very-verbose",
    "loglevel",
    flag_value=logging.DEBUG,
    help="Enable DEBUG logs.",
)
@click.pass_context
def cli(ctx: click.Context, loglevel: Optional[int]) -> None:
    """Heroku AppLink CLI. Use subcommands like 'authorize' or 'query'."""
    configure_logging(loglevel)
    load_env_files()
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("authorize")
@click.argument("developer_name")
@attachment_option
@click.option("--show-json", is_flag=True, help="Print the resolved org as JSON.")
def cmd_authorize(developer_name: str, attachment: Optional[str], show_json: bool) -> None:
    """Resolve the org authorized for DEVELOPER_NAME."""
    org = connect_org(developer_name, attachment)
    click.echo("Authorized.")
    click.echo(f"Org Id      : {org.id}")
    click.echo(f"Instance URL: {org.domain_url}")
    click.echo(f"API Version : {org.api_version}")
    click.echo(f"Org Type    : {org.org_type or '-'}")
    click.echo(f"User        : {org.user.username} ({org.user.id})")
    if show_json:
        click.echo("# org")
        click.echo(
            json.dumps(
                {
                    "id": org.id,
                    "domainUrl": org.domain_url,
                    "apiVersion": org.api_version,
                    "orgType": org.org_type,
                    "namespace": org.namespace,
                    "user": asdict(org.user),
                },
                indent=2,
            )
        )


def _record_to_json(record: QueriedRecord) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": record.type}
    for key, value in record.fields.items():
        out[key] = _record_to_json(value) if isinstance(value, QueriedRecord) else value
    for rel, sub in (record.sub_query_results or {}).items():
        out[rel] = _result_to_json(sub)
    return out


def _result_to_json(result: RecordQueryResult) -> Dict[str, Any]:
    return {
        "totalSize": result.total_size,
        "done": result.done,
        "records": [_record_to_json(r) for r in result.records],
    }


@cli.command("query")
@click.argument("developer_name")
@click.argument("soql")
@attachment_option
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
@click.option("--all", "all_pages", is_flag=True, help="Follow nextRecordsUrl to the last page.")
def cmd_query(
    developer_name: str, soql: str, attachment: Optional[str], pretty: bool, all_pages: bool
) -> None:
    """Run a SOQL query through the Data API."""
    org = connect_org(developer_name, attachment)
    try:
        result = org.data_api.query(soql)
        records = list(result.records)
        while all_pages and result.next_records_url:
            result = org.data_api.query_more(result)
            records.extend(result.records)
    except ApiError as e:
        raise click.ClickException(str(e)) from e

    out = RecordQueryResult(
        done=result.done,
        total_size=result.total_size,
        records=records,
        next_records_url=result.next_records_url,
    )
    click.echo(json.dumps(_result_to_json(out), indent=2 if pretty else None, default=str))


# Cast ensures IDE knows of the Command type
cli.add_command(cast(Command, bulk_ingest_cmd))
cli.add_command(cast(Command, bulk_query_cmd))
