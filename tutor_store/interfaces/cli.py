#!/usr/bin/env python3
"""
CLI Interface - Command-line administration for the Tutor Store.

This module provides a terminal interface for loading and inspecting
the store. It supports:
- Ingesting a document (and, for exams, its solutions)
- Similarity queries with metadata filters
- Fetching, deleting and approving single records
- Serving the HTTP API

Run with:
    python -m tutor_store --help
    python -m tutor_store ingest notes.md --type notes --title "Vectors" ...
    python -m tutor_store query "completing the square" --filter type=exam
"""

import argparse
import json
import logging
import sys

import uvicorn
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from tutor_store import __version__
from tutor_store.config import DEFAULT_QUERY_LIMIT, SERVER_HOST, SERVER_PORT
from tutor_store.embeddings.factory import BACKENDS, create_vector_store
from tutor_store.exceptions import TutorStoreError
from tutor_store.ingestion.document_processor import DocumentProcessor
from tutor_store.ingestion.orchestrator import IngestionOrchestrator, UploadedFile, UploadRequest
from tutor_store.interfaces.web_app import create_app
from tutor_store.models import DOCUMENT_TYPES, Problem

# Rich console for beautiful output
console = Console()


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def parse_filter(pairs: list[str]) -> dict:
    """
    Turn ``["type=exam", "year=2023"]`` into a filter dict.

    Values are read as JSON when possible, so numbers and booleans keep
    their type; anything else stays a string.
    """
    filter_ = {}
    for pair in pairs:
        if "=" not in pair:
            raise argparse.ArgumentTypeError(f"Filter must look like key=value: {pair}")
        key, raw = pair.split("=", 1)
        try:
            filter_[key] = json.loads(raw)
        except ValueError:
            filter_[key] = raw
    return filter_


# =============================================================================
# COMMANDS
# =============================================================================


def cmd_ingest(args) -> int:
    metadata = {
        "type": args.type,
        "title": args.title,
        "subject": args.subject,
        "level": args.level,
        "topic": args.topic,
        "subtopic": args.subtopic,
        "difficulty": args.difficulty,
        "source": args.source,
        "year": args.year,
        "paper": args.paper,
        "chapter": args.chapter,
    }
    request = UploadRequest(
        document=UploadedFile.from_path(args.document),
        solution=UploadedFile.from_path(args.solution) if args.solution else None,
        metadata={key: value for key, value in metadata.items() if value is not None},
    )

    store = create_vector_store(backend=args.backend)
    orchestrator = IngestionOrchestrator(DocumentProcessor(), store)

    with console.status("[bold green]Ingesting...", spinner="dots"):
        result = orchestrator.ingest(request)

    table = Table(title="Ingestion Summary", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Stage", result.stage.value)
    table.add_row("Records stored", str(result.processed_count))
    table.add_row("Errors", str(len(result.errors)))
    table.add_row("Collection total", str(store.count))
    console.print(table)

    for error in result.errors:
        console.print(f"[red]  {error}[/red]")
    return 1 if result.errors else 0


def cmd_query(args) -> int:
    store = create_vector_store(backend=args.backend)
    results = store.query(args.text, parse_filter(args.filter), args.limit)

    if not results:
        console.print("[yellow]No matching records.[/yellow]")
        return 0

    table = Table(title=f"Results for: {args.text}", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=3)
    table.add_column("Score", style="green")
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Preview")
    for rank, result in enumerate(results, start=1):
        preview = result.content[:80].replace("\n", " ")
        table.add_row(
            str(rank),
            f"{result.score:.3f}",
            result.id,
            result.metadata.title,
            preview,
        )
    console.print(table)
    return 0


def cmd_status(args) -> int:
    store = create_vector_store(backend=args.backend)
    info = store.info()

    table = Table(title="Vector Store Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Backend", args.backend or "configured default")
    table.add_row("Collection", info.name)
    table.add_row("Records", str(info.count))
    table.add_row("Embedding model", info.embedding_model)
    console.print(table)
    return 0


def cmd_get(args) -> int:
    store = create_vector_store(backend=args.backend)
    record = store.get(args.id)
    meta = record.metadata

    lines = [
        f"[bold]{meta.title}[/bold]",
        f"[dim]{meta.type} | {meta.subject} | {meta.level} | {meta.year} | "
        f"vetted: {meta.vetted}[/dim]",
        "",
    ]
    if isinstance(record, Problem):
        lines.append(record.question)
        lines.append("")
        lines.extend(f"  {i}. {step}" for i, step in enumerate(record.solution.steps, start=1))
        lines.append(f"[green]Answer: {record.solution.final_answer}[/green]")
    else:
        lines.append(record.content)
    console.print(Panel("\n".join(lines), title=record.id, border_style="blue"))
    return 0


def cmd_delete(args) -> int:
    store = create_vector_store(backend=args.backend)
    store.delete(args.id)
    console.print(f"[green]Deleted {args.id}[/green]")
    return 0


def cmd_approve(args) -> int:
    store = create_vector_store(backend=args.backend)
    store.approve(args.id, args.by)
    console.print(f"[green]{args.id} approved by {args.by}[/green]")
    return 0


def cmd_serve(args) -> int:
    app = create_app(create_vector_store(backend=args.backend))
    console.print(
        Panel(
            f"[bold blue]Tutor Store API[/bold blue] v{__version__}\n"
            f"http://{args.host}:{args.port}",
            border_style="blue",
        )
    )
    uvicorn.run(app, host=args.host, port=args.port)
    return 0


# =============================================================================
# ARGUMENT PARSING
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tutor_store",
        description="Educational document store with similarity search",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument(
        "--backend", choices=BACKENDS, default=None, help="Override the configured backend"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Ingest a document from local files")
    ingest.add_argument("document", help="PDF, text or markdown file")
    ingest.add_argument("--solution", help="Solutions file (required for exams)")
    ingest.add_argument("--type", required=True, choices=DOCUMENT_TYPES)
    ingest.add_argument("--title", required=True)
    ingest.add_argument("--subject", required=True)
    ingest.add_argument("--level", required=True)
    ingest.add_argument("--topic", required=True)
    ingest.add_argument("--subtopic")
    ingest.add_argument("--difficulty", default="medium", choices=("easy", "medium", "hard"))
    ingest.add_argument("--source", required=True)
    ingest.add_argument("--year", required=True, type=int)
    ingest.add_argument("--paper")
    ingest.add_argument("--chapter")
    ingest.set_defaults(func=cmd_ingest)

    query = sub.add_parser("query", help="Find records similar to a text")
    query.add_argument("text")
    query.add_argument(
        "--filter", action="append", default=[], metavar="KEY=VALUE",
        help="Exact metadata match, repeatable (e.g. type=exam)",
    )
    query.add_argument("--limit", type=int, default=DEFAULT_QUERY_LIMIT)
    query.set_defaults(func=cmd_query)

    status = sub.add_parser("status", help="Show collection statistics")
    status.set_defaults(func=cmd_status)

    get = sub.add_parser("get", help="Show one record")
    get.add_argument("id")
    get.set_defaults(func=cmd_get)

    delete = sub.add_parser("delete", help="Delete one record")
    delete.add_argument("id")
    delete.set_defaults(func=cmd_delete)

    approve = sub.add_parser("approve", help="Mark a record as vetted")
    approve.add_argument("id")
    approve.add_argument("--by", required=True, help="Who vetted the record")
    approve.set_defaults(func=cmd_approve)

    serve = sub.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=SERVER_HOST)
    serve.add_argument("--port", type=int, default=SERVER_PORT)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        return args.func(args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except TutorStoreError as e:
        console.print(f"[red]Error: {e}[/red]")
        if e.detail:
            console.print(f"[dim]{e.detail}[/dim]")
        return 1
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
