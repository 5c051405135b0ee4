"""Restore stored highlights into a saved HTML page.

Reads a page and a set of highlight records, resolves every record against
the page once, prints how each was placed and writes the anchored page.

Records come either from a JSON list of records or, with ``--url``, from a
highlight store file keyed by site and page.

Usage:
    reanchor page.html highlights.json                  # report only
    reanchor page.html highlights.json -o marked.html   # write anchored page
    reanchor page.html store.json --url https://example.com/post
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from pydantic import TypeAdapter, ValidationError
from rich.console import Console
from rich.table import Table

from reanchor import setup_logging
from reanchor.config import get_settings
from reanchor.document.html import extract_head, parse_document, render_page
from reanchor.engine import AnchorEngine
from reanchor.errors import StoreUnavailableError
from reanchor.models import HighlightRecord
from reanchor.store import JsonFileHighlightStore, PageKey

console = Console()

_RECORDS_ADAPTER = TypeAdapter(list[HighlightRecord])


def _load_records(path: Path, url: str | None) -> list[HighlightRecord]:
    if url is not None:
        store = JsonFileHighlightStore(path)
        return asyncio.run(store.load(PageKey.from_url(url)))
    return _RECORDS_ADAPTER.validate_json(path.read_bytes())


def _restore(page: Path, highlights: Path, output: Path | None, url: str | None) -> int:
    """Run one resolution pass. Returns the number of unplaced records."""
    try:
        markup = page.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        console.print(f"[red]Error:[/] cannot read page: {exc}")
        sys.exit(1)

    try:
        records = _load_records(highlights, url)
    except (OSError, ValidationError, StoreUnavailableError) as exc:
        console.print(f"[red]Error:[/] cannot read highlights: {exc}")
        sys.exit(1)

    document = parse_document(markup, url=url)
    engine = AnchorEngine(document, get_settings())

    table = Table(title=f"{len(records)} highlight(s) in {page.name}")
    table.add_column("Id", style="dim")
    table.add_column("Text")
    table.add_column("Strategy")
    table.add_column("Score", justify="right")
    table.add_column("Result")

    missed = 0
    for record in records:
        outcome = engine.resolve_and_anchor(record)
        preview = record.text if len(record.text) <= 40 else record.text[:37] + "..."
        if outcome.anchored:
            result = f"[green]anchored[/] ({len(outcome.anchor_ids)} part(s))"
        else:
            missed += 1
            result = f"[red]not found[/] ({outcome.reason})"
        table.add_row(
            record.id,
            preview,
            str(outcome.strategy or "-"),
            f"{outcome.score:.1f}" if outcome.score is not None else "-",
            result,
        )

    console.print(table)

    if output is not None:
        try:
            output.write_text(
                render_page(document, extract_head(markup)), encoding="utf-8"
            )
        except OSError as exc:
            console.print(f"[red]Error:[/] cannot write {output}: {exc}")
            sys.exit(1)
        console.print(f"Wrote anchored page to [bold]{output}[/]")

    placed = len(records) - missed
    console.print(f"Placed [bold]{placed}[/] of {len(records)} highlight(s).")
    return missed


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for restoring highlights into a page."""
    parser = argparse.ArgumentParser(
        description="Restore stored highlights into an HTML page.",
    )
    parser.add_argument("page", type=Path, help="HTML page to anchor into.")
    parser.add_argument(
        "highlights",
        type=Path,
        help="JSON list of highlight records, or a store file with --url.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Write the anchored page here.",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Page URL; reads HIGHLIGHTS as a store file keyed by this page.",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 2 if any highlight could not be placed.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging.")
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.WARNING)

    if not args.page.is_file():
        console.print(f"[red]Error:[/] {args.page} not found")
        sys.exit(1)

    missed = _restore(args.page, args.highlights, args.output, args.url)
    if args.strict and missed:
        sys.exit(2)
