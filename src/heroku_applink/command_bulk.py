from __future__ import annotations

import csv
import logging
import time
from typing import Optional

import click
from tqdm import tqdm

from .bulk_api import QueryJobReference
from .cli_helpers import attachment_option, connect_org, supports_unicode_emoji
from .datatable import DataTable, DataTableBuilder
from .exceptions import ApiError
from .org import Org

_logger = logging.getLogger(__name__)

_TERMINAL_STATES = {"JobComplete", "Failed", "Aborted"}


def _read_csv_table(path: str) -> DataTable:
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        builder = DataTableBuilder(*(reader.fieldnames or []))
        for row in reader:
            builder.add_row(row)
    return builder.build()


@click.command("bulk-ingest")
@click.argument("developer_name")
@click.argument("object_name")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--operation",
    default="insert",
    show_default=True,
    type=click.Choice(["insert", "update", "upsert", "delete", "hardDelete"]),
)
@attachment_option
def bulk_ingest_cmd(
    developer_name: str,
    object_name: str,
    csv_file: str,
    operation: str,
    attachment: Optional[str],
) -> None:
    """Upload CSV_FILE into OBJECT_NAME with Bulk API v2 ingest jobs."""
    table = _read_csv_table(csv_file)
    org = connect_org(developer_name, attachment)

    ok_mark, fail_mark = ("✅", "❌") if supports_unicode_emoji() else ("[OK]", "[FAIL]")
    failures = 0
    results = org.bulk_api.iter_ingest(object_name, table, operation)
    for n, result in enumerate(tqdm(results, desc=f"Ingest {object_name}", unit="chunk"), start=1):
        job_id = result.job_reference.id if result.job_reference else "-"
        if result.ok:
            click.echo(f"{ok_mark} chunk {n}: job {job_id}")
        else:
            failures += 1
            click.echo(f"{fail_mark} chunk {n}: job {job_id}: {result.error}", err=True)

    click.echo(f"{len(table)} rows submitted, {failures} chunk(s) failed")
    if failures:
        raise SystemExit(1)


def _wait_for_job(org: Org, job: QueryJobReference, poll_interval: float) -> str:
    while True:
        info = org.bulk_api.get_info(job)
        state = info.get("state", "")
        _logger.info("Query job %s state=%s", job.id, state)
        if state in _TERMINAL_STATES:
            return state
        time.sleep(poll_interval)


@click.command("bulk-query")
@click.argument("developer_name")
@click.argument("soql")
@click.argument("out_csv", type=click.Path(dir_okay=False, writable=True))
@click.option("--max-records", type=int, default=None, help="Page size for result downloads.")
@click.option("--query-all", is_flag=True, help="Include deleted and archived records.")
@click.option("--poll-interval", type=float, default=5.0, show_default=True)
@attachment_option
def bulk_query_cmd(
    developer_name: str,
    soql: str,
    out_csv: str,
    max_records: Optional[int],
    query_all: bool,
    poll_interval: float,
    attachment: Optional[str],
) -> None:
    """Run SOQL as a Bulk API v2 query job and write every page to OUT_CSV."""
    org = connect_org(developer_name, attachment)
    bulk = org.bulk_api
    try:
        job = bulk.query(soql, "queryAll" if query_all else "query")
        state = _wait_for_job(org, job, poll_interval)
        if state != "JobComplete":
            raise click.ClickException(f"Query job {job.id} ended in state {state}")

        total = 0
        with open(out_csv, "w", newline="", encoding="utf-8") as f, tqdm(
            desc="Query pages", unit="page"
        ) as bar:
            page = bulk.get_query_results(job, max_records)
            writer = csv.DictWriter(f, fieldnames=list(page.data_table.columns))
            writer.writeheader()
            while True:
                writer.writerows(page.data_table)
                total += page.number_of_records
                bar.update(1)
                if page.done:
                    break
                page = bulk.get_more_query_results(page, max_records)
    except ApiError as e:
        raise click.ClickException(str(e)) from e

    arrow = "→" if supports_unicode_emoji() else "->"
    click.echo(f"Wrote {total} rows {arrow} {out_csv}")
