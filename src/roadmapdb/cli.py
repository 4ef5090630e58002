#!/usr/bin/env python3
"""roadmapdb CLI for inspecting the record store."""

import argparse
import asyncio
import logging

import questionary
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from roadmapdb.db import Database
from roadmapdb.record import ColumnPolicy, RecordStore

console = Console()


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def parse_value(raw: str):
    """Command line values are text; integers are passed as integers."""
    try:
        return int(raw)
    except ValueError:
        return raw


def render_record(table: str, record: dict) -> Table:
    view = Table(title=table, show_header=True)
    view.add_column("column", style="bold")
    view.add_column("value")
    for column, value in record.items():
        view.add_row(column, repr(value))
    return view


async def bootstrap() -> None:
    """Run the setup script and report what happened."""
    async with RecordStore(Database()) as store:
        report = store.gate.report
    if report.ok:
        console.print(f"[green]Bootstrap complete: {report.executed} statement(s).[/]")
        return
    console.print(
        f"[yellow]Bootstrap finished with {len(report.failures)} failed statement(s).[/]"
    )
    for statement, error in report.failures:
        console.print(f"  [red]{error}[/] [dim]{' '.join(statement.split())[:80]}[/]")


async def show_record(table: str, record_id: int) -> None:
    async with RecordStore(Database()) as store:
        record = await store.get(table, record_id)
    if record is None:
        console.print(f"[red]No record {record_id} in {table}.[/]")
        return
    console.print(render_record(table, record))


async def count_records(table: str, pairs: list) -> None:
    async with RecordStore(Database()) as store:
        if pairs:
            total = await store.count_where(table, *pairs)
        else:
            total = await store.count(table)
    console.print(f"{table}: [bold]{total}[/]")


async def browse() -> None:
    """Prompt for a table, then for record ids to show."""
    table = await questionary.select(
        "Select a table:",
        choices=sorted(ColumnPolicy.default().tables),
    ).ask_async()

    # User pressed Ctrl+C or Escape
    if table is None:
        console.print("[dim]Cancelled.[/]")
        return

    async with RecordStore(Database()) as store:
        total = await store.count(table)
        if not total:
            console.print(f"[red]No records found in {table}.[/]")
            return
        console.print(f"{table}: [bold]{total}[/] record(s)")

        while True:
            answer = await questionary.text("Record id (blank to quit):").ask_async()
            if not answer:
                break
            if not answer.lstrip("-").isdigit():
                console.print("[yellow]Ids are integers.[/]")
                continue
            record = await store.get(table, int(answer))
            if record is None:
                console.print(f"[red]No record {answer} in {table}.[/]")
            else:
                console.print(render_record(table, record))


def main():
    parser = argparse.ArgumentParser(description="roadmapdb CLI")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log SQL statements")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("bootstrap", help="Run the schema setup script")

    get_parser = subparsers.add_parser("get", help="Show one record")
    get_parser.add_argument("table")
    get_parser.add_argument("id", type=int)

    count_parser = subparsers.add_parser("count", help="Count records")
    count_parser.add_argument("table")
    count_parser.add_argument("pairs", nargs="*", help="column value [column value ...]")

    subparsers.add_parser("browse", help="Pick a table and look up records by id")

    args = parser.parse_args()
    configure_logging(args.verbose)

    if args.command == "bootstrap":
        asyncio.run(bootstrap())
    elif args.command == "get":
        asyncio.run(show_record(args.table, args.id))
    elif args.command == "count":
        if len(args.pairs) % 2:
            parser.error("count expects column/value pairs")
        pairs = [p if i % 2 == 0 else parse_value(p) for i, p in enumerate(args.pairs)]
        asyncio.run(count_records(args.table, pairs))
    elif args.command == "browse":
        asyncio.run(browse())


if __name__ == "__main__":
    main()
