"""
Run: Load both ledgers, settle the mapping, reconcile and write the run folder.

A run directory holds:
- run_meta.json: inputs, mapping, output files and counts
- summary.json: ResultSet.summary()
- the report workbook (Summary / Common Entries / Only in A / Only in B / Mismatches)
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from rich.console import Console
from rich.table import Table

from ..catalog.loaders import load_category_catalog
from ..config import ConfigError, load_config, mapping_from_config
from ..io.export import export_report
from ..io.workbook import load_dataset
from ..reconcile.engine import ReconciliationStages
from ..reconcile.keys import display_key
from ..reconcile.mapper import ColumnMapper, HeuristicSuggester
from ..reconcile.models import Dataset, Mapping, ResultSet
from ..utils.json_utils import write_json
from ..utils.runs import get_run_dir, new_run_id, resolve_input, utc_now_iso

console = Console()

DEFAULT_REPORT_NAME = "reconciliation_report.xlsx"


@dataclass
class RunResult:
    run_id: str
    run_dir: Path
    result: ResultSet
    dataset_a: Dataset
    dataset_b: Dataset
    mapping: Mapping
    auto_mapped: bool
    report_path: Path


def _load_side(section: Dict[str, Any], base_dir: Path, override: Optional[Path]) -> Tuple[Path, Dataset]:
    path = Path(override) if override else resolve_input(section["path"], base_dir)
    dataset = load_dataset(path, sheet=section.get("sheet"), label=section.get("label"))
    return path, dataset


def settle_mapping(
    cfg: Dict[str, Any],
    dataset_a: Dataset,
    dataset_b: Dataset,
    base_dir: Path,
) -> Tuple[Mapping, bool]:
    """
    Configured mapping wins; otherwise auto-suggest when auto_map is on.

    Returns (mapping, auto_mapped). The mapping may be empty; the engine rejects that.
    """
    configured = mapping_from_config(cfg)
    if configured:
        return configured, False
    if not cfg.get("auto_map", True):
        return (), False

    categories_file = cfg.get("categories_file")
    try:
        catalog = load_category_catalog(resolve_input(categories_file, base_dir) if categories_file else None)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    mapper = ColumnMapper(HeuristicSuggester(catalog))
    applied = mapper.auto_fill(dataset_a.headers, dataset_b.headers)
    return mapper.freeze(), applied


def summary_table(result: ResultSet, dataset_a: Dataset, dataset_b: Dataset) -> Table:
    name_a = dataset_a.label or "A"
    name_b = dataset_b.label or "B"
    table = Table(title="Reconciliation Results")
    table.add_column("Category")
    table.add_column("Count", justify="right")
    table.add_row("[green]Common Entries[/green]", str(result.matched_count))
    table.add_row(f"[blue]Only in {name_a}[/blue]", str(result.only_in_a_count))
    table.add_row(f"[yellow]Only in {name_b}[/yellow]", str(result.only_in_b_count))
    table.add_row("Total", str(result.total))
    table.add_row("Matched with mismatches", str(len(result.mismatched_entries)))
    return table


def run_reconciliation(
    config_path: Path,
    run_id: Optional[str] = None,
    reference: Optional[Path] = None,
    counterparty: Optional[Path] = None,
) -> RunResult:
    """
    Execute one reconciliation run described by a YAML config.

    Raises FileNotFoundError / ConfigError for bad config or inputs and
    ConfigurationError / DataShapeError from the engine.
    """
    config_path = Path(config_path)
    cfg = load_config(config_path)
    base_dir = config_path.parent

    run_id = run_id or new_run_id()
    console.print(f"[bold green]Run ID:[/bold green] {run_id}")

    path_a, dataset_a = _load_side(cfg["reference"], base_dir, reference)
    path_b, dataset_b = _load_side(cfg["counterparty"], base_dir, counterparty)
    console.print(
        f"[cyan]Load[/cyan]: {dataset_a.label} {len(dataset_a)} rows x {len(dataset_a.headers)} cols, "
        f"{dataset_b.label} {len(dataset_b)} rows x {len(dataset_b.headers)} cols"
    )

    mapping, auto_mapped = settle_mapping(cfg, dataset_a, dataset_b, base_dir)
    if auto_mapped:
        console.print(f"[cyan]Mapping[/cyan]: auto-suggested {len(mapping)} pair(s)")
    for pair in mapping:
        console.print(f"  {pair.pair_id}. {pair.source_key} <-> {pair.target_key} ({pair.role})")

    strict = bool((cfg.get("engine") or {}).get("strict_shape", False))
    stages = ReconciliationStages(dataset_a, dataset_b, mapping, strict=strict)

    with console.status("Extracting key values"):
        keyed_a, keyed_b = stages.key()
    console.print(
        f"[cyan]Keys[/cyan]: {len(keyed_a.rows)} keyable in {dataset_a.label} "
        f"({keyed_a.skipped} skipped), {len(keyed_b.rows)} keyable in {dataset_b.label} "
        f"({keyed_b.skipped} skipped)"
    )
    with console.status("Finding common entries"):
        index_b = stages.index(keyed_b)
        matched, only_a, only_b = stages.classify(keyed_a, keyed_b, index_b)
    with console.status("Comparing mapped columns"):
        matched = stages.annotate(matched)
    result = stages.result(matched, only_a, only_b, keyed_a, keyed_b)

    leftovers = result.leftover_duplicate_keys()
    if leftovers:
        sample = ", ".join(display_key(k) for k in leftovers[:5])
        console.print(
            f"[yellow]Warning:[/yellow] {len(leftovers)} duplicated key(s) left unpaired rows: {sample}"
        )

    # created only once every stage has succeeded
    run_dir = get_run_dir(resolve_input(cfg["io"]["runs_dir"], base_dir), run_id)
    report_name = (cfg.get("report") or {}).get("filename") or DEFAULT_REPORT_NAME
    with console.status("Generating reconciliation report"):
        report_path = export_report(result, dataset_a, dataset_b, run_dir / report_name)
    summary_path = run_dir / "summary.json"
    write_json(summary_path, result.summary())

    run_meta = {
        "run_id": run_id,
        "created_at": utc_now_iso(),
        "config_path": str(config_path),
        "inputs": {
            "reference": {"path": str(path_a), "label": dataset_a.label, "rows": len(dataset_a)},
            "counterparty": {"path": str(path_b), "label": dataset_b.label, "rows": len(dataset_b)},
        },
        "mapping": [p.to_dict() for p in mapping],
        "auto_mapped": auto_mapped,
        "output_files": {"report": report_path.name, "summary": summary_path.name},
        "counts": result.summary()["counts"],
    }
    write_json(run_dir / "run_meta.json", run_meta)

    console.print(summary_table(result, dataset_a, dataset_b))
    console.print(f"[bold]Report:[/bold] {report_path}")

    return RunResult(
        run_id=run_id,
        run_dir=run_dir,
        result=result,
        dataset_a=dataset_a,
        dataset_b=dataset_b,
        mapping=mapping,
        auto_mapped=auto_mapped,
        report_path=report_path,
    )
