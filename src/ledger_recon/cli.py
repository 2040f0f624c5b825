from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .catalog.loaders import load_category_catalog
from .config import ConfigError
from .io.workbook import list_sheets, load_dataset, preview_rows
from .pipeline.run import run_reconciliation
from .reconcile.errors import ConfigurationError, DataShapeError
from .reconcile.mapper import HeuristicSuggester
from .reconcile.normalize import normalize

console = Console()


def _load_or_exit(path: Path, sheet: Optional[str]):
    try:
        return load_dataset(path, sheet=sheet)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(2)
    except DataShapeError as e:
        console.print(f"[red]Data error:[/red] {e}")
        sys.exit(2)


def cmd_run(args: argparse.Namespace) -> int:
    config_path = Path(args.config or "config.yml")
    try:
        run = run_reconciliation(
            config_path,
            run_id=args.run_id,
            reference=Path(args.reference) if args.reference else None,
            counterparty=Path(args.counterparty) if args.counterparty else None,
        )
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 2
    except ConfigError as e:
        console.print(f"[red]Config error:[/red] {e}")
        return 2
    except ConfigurationError as e:
        console.print(f"[red]Mapping error:[/red] {e}")
        return 2
    except DataShapeError as e:
        console.print(f"[red]Data error:[/red] {e}")
        return 2

    console.print(f"[bold]Run directory:[/bold] {run.run_dir}")
    return 0


def cmd_suggest(args: argparse.Namespace) -> int:
    try:
        catalog = load_category_catalog(Path(args.categories) if args.categories else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Category table error:[/red] {e}")
        return 2

    dataset_a = _load_or_exit(Path(args.reference), args.sheet_a)
    dataset_b = _load_or_exit(Path(args.counterparty), args.sheet_b)
    mapping = HeuristicSuggester(catalog).suggest(dataset_a.headers, dataset_b.headers)

    if not mapping:
        console.print("[yellow]No column pairs suggested.[/yellow] Map columns manually in the config.")
        return 0

    table = Table(title="Suggested Mapping")
    table.add_column("#", justify="right")
    table.add_column(f"{dataset_a.label} column")
    table.add_column(f"{dataset_b.label} column")
    for pair in mapping:
        table.add_row(pair.pair_id, pair.source_key, pair.target_key)
    console.print(table)
    return 0


def cmd_preview(args: argparse.Namespace) -> int:
    path = Path(args.path)
    try:
        sheets = list_sheets(path)
    except FileNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 2
    if len(sheets) > 1:
        console.print(f"[bold]Sheets:[/bold] {', '.join(sheets)}")

    dataset = _load_or_exit(path, args.sheet)
    rows = preview_rows(dataset, args.rows)

    table = Table(title=f"{dataset.label} Preview")
    for header in dataset.headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*[normalize(v) for v in row])
    console.print(table)
    if rows:
        console.print(f"Showing first {len(rows)} of {len(dataset)} rows")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-recon",
        description="Reconcile a reference ledger against a counterparty ledger.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # run
    p_run = sub.add_parser("run", help="Reconcile the ledgers named in config.yml and write a report")
    p_run.add_argument("--config", type=str, default="config.yml", help="Path to config.yml")
    p_run.add_argument("--reference", type=str, help="Override reference (A) workbook path")
    p_run.add_argument("--counterparty", type=str, help="Override counterparty (B) workbook path")
    p_run.add_argument("--run-id", type=str, help="Provide a specific run id")
    p_run.set_defaults(func=cmd_run)

    # suggest
    p_sug = sub.add_parser("suggest", help="Suggest column pairs from the two header rows")
    p_sug.add_argument("reference", type=str, help="Reference (A) workbook or CSV")
    p_sug.add_argument("counterparty", type=str, help="Counterparty (B) workbook or CSV")
    p_sug.add_argument("--sheet-a", type=str, help="Sheet name in the reference workbook")
    p_sug.add_argument("--sheet-b", type=str, help="Sheet name in the counterparty workbook")
    p_sug.add_argument("--categories", type=str, help="YAML category table overriding the built-in one")
    p_sug.set_defaults(func=cmd_suggest)

    # preview
    p_prev = sub.add_parser("preview", help="Show the first rows of a sheet")
    p_prev.add_argument("path", type=str, help="Workbook or CSV")
    p_prev.add_argument("--sheet", type=str, help="Sheet name (default: first sheet)")
    p_prev.add_argument("--rows", type=int, default=5, help="Number of rows to show")
    p_prev.set_defaults(func=cmd_preview)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except SystemExit:
        raise
    except Exception as e:
        console.print(f"[red]Unexpected error:[/red] {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
