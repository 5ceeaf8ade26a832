from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Tuple

import click
from tqdm import tqdm

from . import __version__
from .client import SalesforceClient
from .config import SFConfig, load_env_files
from .exceptions import MissingCredentialsError, SalesforceException, TransportError
from .logging_config import configure_logging

_logger = logging.getLogger(__name__)

# Load .env very early, so everything else sees env vars
load_env_files(quiet=True)


@contextmanager
def _reported_errors(action: str) -> Iterator[None]:
    """Turn client failures into a one-line message and a non-zero exit."""
    try:
        yield
    except SalesforceException as e:
        click.echo(f"❌  {action} failed [{e.error.value}]: {e.message}", err=True)
        raise click.Abort() from None
    except (TransportError, MissingCredentialsError, ValueError) as e:
        click.echo(f"❌  {action} failed: {e}", err=True)
        raise click.Abort() from None


def _connect() -> SalesforceClient:
    cfg = SFConfig.from_env()
    client = SalesforceClient(api_version=cfg.api_version, timeout=cfg.timeout)
    client.authenticate(cfg.authentication_flow())
    return client


def _parse_assignments(pairs: Tuple[str, ...]) -> Dict[str, Any]:
    """Parse FIELD=VALUE arguments; values that look like JSON are decoded."""
    fields: Dict[str, Any] = {}
    for pair in pairs:
        if "=" not in pair:
            raise click.BadParameter(f"expected FIELD=VALUE, got {pair!r}")
        key, raw = pair.split("=", 1)
        try:
            fields[key] = json.loads(raw)
        except ValueError:
            fields[key] = raw
    return fields


def _echo_json(data: Any, pretty: bool) -> None:
    click.echo(json.dumps(data, indent=2 if pretty else None, default=str))


@click.group(
    context_settings={"help_option_names": ["-h", "--help"]},
    invoke_without_command=True,
)
@click.version_option(__version__, "--version", prog_name="sfclient")
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
    """Salesforce REST client. Credentials come from SF_* environment variables."""
    configure_logging(loglevel)
    _logger.debug("CLI start, version=%s", __version__)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("login")
def cmd_login() -> None:
    """Authenticate and show the session details."""
    with _reported_errors("Login"):
        client = _connect()
    token = client.sf_session.access_token or ""
    click.echo("✅  Authenticated with Salesforce.")
    click.echo(f"Instance URL: {client.instance_url}")
    click.echo(f"API Version: {client.api_version}")
    click.echo(f"Token preview: {token[:10]}...{token[-6:]}")


@cli.command("query")
@click.argument("soql")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
@click.option("--all", "all_pages", is_flag=True, help="Follow nextRecordsUrl to fetch every page.")
@click.option("--progress/--no-progress", default=True, help="Show a page counter with --all.")
def cmd_query(soql: str, pretty: bool, all_pages: bool, progress: bool) -> None:
    """Run a SOQL query and print the records as JSON."""
    with _reported_errors("Query"):
        client = _connect()
        if all_pages:
            with tqdm(desc="Query pages", unit="page", disable=not progress) as bar:
                records = client.query_batch(soql, lambda batch: bar.update(1))
        else:
            records = client.query(soql)
    _echo_json(records, pretty)


@cli.command("find")
@click.argument("object_name")
@click.argument("record_id")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_find(object_name: str, record_id: str, pretty: bool) -> None:
    """Look up one record by id."""
    with _reported_errors("Find"):
        record = _connect().find_by_id(object_name, record_id)
    if record is None:
        click.echo(f"No {object_name} with Id {record_id}.", err=True)
        raise SystemExit(1)
    _echo_json(record, pretty)


@cli.command("describe")
@click.argument("object_name")
@click.option("--pretty", is_flag=True, help="Pretty-print JSON.")
def cmd_describe(object_name: str, pretty: bool) -> None:
    """Print the metadata description of an sObject type."""
    with _reported_errors("Describe"):
        metadata = _connect().read_metadata(object_name)
        if pretty:
            metadata = json.dumps(json.loads(metadata), indent=2)
    click.echo(metadata)


@cli.command("create")
@click.argument("object_name")
@click.argument("fields", nargs=-1, required=True)
def cmd_create(object_name: str, fields: Tuple[str, ...]) -> None:
    """Create a record from FIELD=VALUE pairs and print its id."""
    record = _parse_assignments(fields)
    with _reported_errors("Create"):
        record_id = _connect().create(object_name, record)
    click.echo(record_id)


@cli.command("update")
@click.argument("object_name")
@click.argument("record_id")
@click.argument("fields", nargs=-1, required=True)
def cmd_update(object_name: str, record_id: str, fields: Tuple[str, ...]) -> None:
    """Update a record from FIELD=VALUE pairs."""
    record = _parse_assignments(fields)
    with _reported_errors("Update"):
        _connect().update(object_name, record_id, record)
    click.echo(f"✅  Updated {object_name} {record_id}")


@cli.command("delete")
@click.argument("object_name")
@click.argument("record_id")
def cmd_delete(object_name: str, record_id: str) -> None:
    """Delete a record."""
    with _reported_errors("Delete"):
        _connect().delete(object_name, record_id)
    click.echo(f"✅  Deleted {object_name} {record_id}")
