"""Command-line interface for ``ledger_ingest`` (``ledger-ingest``).

Subcommands
-----------
- ``parse FILE [--bank ing|dkb]``: print the parsed statement as JSON.
- ``import FILE --account-id N [--bank] [--no-fallback]``: import a statement.
- ``correct TX_ID CATEGORY [--actor NAME]``: record a manual correction.
- ``rollback JOB_ID``: undo one import.
- ``seed``: insert missing default accounts, categories and rules.

Pipeline errors are printed to stderr and exit with status 1 (2 for
retryable upstream failures).
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from typer.models import ArgumentInfo

from .errors import IngestError
from .logging_setup import configure_logging

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import German bank statements (ING, DKB) into the ledger. "
        "Loads DATABASE_URL and OPENAI_API_KEY from a local .env before running."
    ),
)

FILE_ARGUMENT: ArgumentInfo = typer.Argument(
    ...,
    help="Statement export (.csv, .txt or .pdf)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # reported as a pipeline error below
    readable=True,
)


def _echo_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _fail(err: IngestError) -> typer.Exit:
    print(f"Error: {err.message}", file=sys.stderr)
    if err.hint:
        print(f"Hint: {err.hint}", file=sys.stderr)
    return typer.Exit(2 if err.retryable else 1)


def _read_file(path: Path) -> bytes:
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        raise typer.Exit(1)
    return path.read_bytes()


@app.command("parse")
def parse_cmd(
    file: Annotated[Path, FILE_ARGUMENT],
    bank: str | None = typer.Option(None, help="Issuer override: ing or dkb."),
) -> None:
    """Parse a statement and print transactions and warnings as JSON."""

    from .ingest import extract_text, parse_document

    data = _read_file(file)
    try:
        parsed = parse_document(extract_text(data, file.name), filename=file.name, issuer=bank)
    except IngestError as err:
        raise _fail(err) from err
    _echo_json(parsed.to_dict())


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    file: Annotated[Path, FILE_ARGUMENT],
    account_id: int = typer.Option(..., "--account-id", help="Target ledger account id."),
    bank: str | None = typer.Option(None, help="Issuer override: ing or dkb."),
    fallback: bool = typer.Option(
        True, "--fallback/--no-fallback", help="Ask OpenAI about rows no rule matched."
    ),
) -> None:
    """Import a statement into an account and print the job summary."""

    from .importer import import_statement

    data = _read_file(file)
    try:
        result = import_statement(
            data,
            filename=file.name,
            account_id=account_id,
            issuer=bank,
            database_url=ctx.obj.get("database_url"),
            use_fallback=fallback,
        )
    except IngestError as err:
        raise _fail(err) from err
    _echo_json(result.to_dict())


@app.command("correct")
def correct_cmd(
    ctx: typer.Context,
    transaction_id: int = typer.Argument(..., help="Ledger transaction id."),
    category: str = typer.Argument(..., help="New category code, e.g. Supermarkt."),
    actor: str | None = typer.Option(None, help="Who made the correction."),
) -> None:
    """Set a transaction's category; repeated corrections teach a new rule."""

    from ledger_db.client import session_scope

    from .learning import change_category

    try:
        with session_scope(database_url=ctx.obj.get("database_url")) as session:
            result = change_category(session, transaction_id, category, actor=actor)
    except IngestError as err:
        raise _fail(err) from err
    _echo_json(result.to_dict())


@app.command("rollback")
def rollback_cmd(
    ctx: typer.Context,
    job_id: int = typer.Argument(..., help="Import job id."),
) -> None:
    """Delete the transactions of one import and mark it rolled back."""

    from ledger_db.client import session_scope

    from .importer import rollback_import

    try:
        with session_scope(database_url=ctx.obj.get("database_url")) as session:
            deleted = rollback_import(session, job_id)
    except IngestError as err:
        raise _fail(err) from err
    _echo_json({"job_id": job_id, "status": "rolled_back", "deleted": deleted})


@app.command("seed")
def seed_cmd(
    ctx: typer.Context,
    file: Path | None = typer.Option(None, help="Seed JSON (defaults to the bundled file)."),
) -> None:
    """Insert the default accounts, categories and vendor rules that are missing."""

    from ledger_db.client import session_scope

    from .seed_defaults import DEFAULT_SEED_FILE, load_seed, seed_defaults

    data = load_seed(file or DEFAULT_SEED_FILE)
    with session_scope(database_url=ctx.obj.get("database_url")) as session:
        counts = seed_defaults(session, data)
    _echo_json(counts)


@app.callback(invoke_without_command=True)
def _root(
    ctx: typer.Context,
    *,
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
    log_level: str | None = typer.Option(
        None, help="Log level (falls back to LEDGER_INGEST_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures package logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    ctx.obj = {"database_url": database_url}

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
