"""CLI for the ``txn_pipeline`` package.

Typer-based console interface over :class:`~txn_pipeline.pipeline.TransactionPipeline`.
Environment variables (``TXN_*``, ``OPENAI_API_KEY``) are loaded from a local
``.env`` using ``python-dotenv`` before any command runs. Results are printed
as tab-separated lines; user-visible failures go to stderr with exit code 1.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from .config import PipelineConfig
from .exceptions import ConfigurationError
from .logging_setup import configure_logging
from .models import CategorizedTransaction, RawUnit

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Extract, deduplicate and categorize transactions from Indian bank/UPI "
        "notifications and statement exports. Loads .env before running."
    ),
)


# ---- Small helpers -----------------------------------------------------------


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _load_config() -> PipelineConfig:
    try:
        return PipelineConfig.from_env()
    except ConfigurationError as e:
        raise _fail(str(e)) from e


def _build_pipeline(cfg: PipelineConfig, *, persist: bool, database_url: str | None):
    # Deferred imports keep --help fast and avoid touching the DB unless asked.
    from .pipeline import TransactionPipeline
    from .store import InMemoryTransactionStore, SqlTransactionStore

    if not persist:
        return TransactionPipeline(InMemoryTransactionStore(), config=cfg)
    url = database_url or cfg.database_url
    if not url:
        raise _fail("--persist needs TXN_DATABASE_URL, DATABASE_URL or --database-url")
    return TransactionPipeline(SqlTransactionStore(database_url=url), config=cfg)


def _parse_when(raw: str | None, cfg: PipelineConfig) -> datetime:
    if raw is None:
        return datetime.now(cfg.tz)
    try:
        when = datetime.fromisoformat(raw)
    except ValueError as e:
        raise _fail(f"--observed-at is not an ISO-8601 timestamp: {raw!r}") from e
    return when if when.tzinfo is not None else when.replace(tzinfo=cfg.tz)


def _row(txn: CategorizedTransaction) -> str:
    t = txn.transaction
    return "\t".join(
        (
            t.occurred_at.isoformat(),
            format(t.signed_amount, "f"),
            t.direction,
            t.merchant_clean,
            txn.category,
            f"{txn.confidence:.2f}",
            txn.category_source,
        )
    )


# ---- Commands ----------------------------------------------------------------


@app.command("parse-notification")
def parse_notification_cmd(
    body: Annotated[str, typer.Option(help="Notification or SMS text.")],
    origin: Annotated[str, typer.Option(help="App package name or SMS sender id.")],
    observed_at: Annotated[
        str | None,
        typer.Option(help="ISO-8601 arrival time (defaults to now, configured zone)."),
    ] = None,
    persist: Annotated[bool, typer.Option(help="Store into the database.")] = False,
    database_url: Annotated[
        str | None, typer.Option(help="Override TXN_DATABASE_URL / DATABASE_URL.")
    ] = None,
) -> None:
    """Parse one notification and print ``<status>`` plus the stored row."""

    cfg = _load_config()
    try:
        unit = RawUnit(body=body, origin=origin, observed_at=_parse_when(observed_at, cfg))
    except ValidationError as e:
        raise _fail(f"invalid notification: {e.errors()[0]['msg']}") from e
    pipeline = _build_pipeline(cfg, persist=persist, database_url=database_url)
    outcome = pipeline.process_notification(unit)
    line = [outcome.status.value, outcome.variant or ""]
    if outcome.transaction is not None:
        line.append(_row(outcome.transaction))
    typer.echo("\t".join(line))


@app.command("import-statement")
def import_statement_cmd(
    path: Annotated[
        Path, typer.Argument(dir_okay=False, help="CSV or PDF statement to import.")
    ],
    password: Annotated[str | None, typer.Option(help="Password for protected PDFs.")] = None,
    persist: Annotated[bool, typer.Option(help="Store into the database.")] = False,
    database_url: Annotated[
        str | None, typer.Option(help="Override TXN_DATABASE_URL / DATABASE_URL.")
    ] = None,
    show_rows: Annotated[bool, typer.Option(help="Print each imported row.")] = False,
) -> None:
    """Import a statement file and print parsed/imported/skipped counts."""

    cfg = _load_config()
    try:
        data = path.read_bytes()
    except FileNotFoundError as e:
        raise _fail(f"File not found: {path}") from e
    except PermissionError as e:
        raise _fail(f"Permission denied: {path}") from e

    pipeline = _build_pipeline(cfg, persist=persist, database_url=database_url)
    summary = pipeline.import_statement(data, path.name, password)
    for err in summary.errors:
        typer.echo(err, err=True)
    if not summary.success:
        raise typer.Exit(1)
    if show_rows:
        for txn in summary.stored:
            typer.echo(_row(txn))
    typer.echo(
        f"{summary.format_label}\tparsed={summary.parsed}\t"
        f"imported={summary.imported}\tskipped={summary.skipped}"
    )


@app.command("categorize")
def categorize_cmd(
    merchant: Annotated[str, typer.Option(help="Merchant or narration text.")],
    amount: Annotated[str | None, typer.Option(help="Transaction amount in rupees.")] = None,
) -> None:
    """Run the categorization cascade for one merchant string."""

    cfg = _load_config()
    value: Decimal | None = None
    if amount is not None:
        try:
            value = Decimal(amount)
        except InvalidOperation as e:
            raise _fail(f"--amount is not a number: {amount!r}") from e

    from .pipeline import TransactionPipeline

    pipeline = TransactionPipeline(config=cfg)
    result = pipeline.cascade.categorize(merchant, value, pipeline.capabilities())
    typer.echo(
        "\t".join(
            (
                result.category,
                result.subcategory or "",
                f"{result.confidence:.2f}",
                result.source,
                result.merchant_name or "",
            )
        )
    )


@app.callback()
def _root() -> None:
    """Load ``.env`` from the working directory and configure logging."""

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


def main() -> None:  # pragma: no cover - console script entry
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
