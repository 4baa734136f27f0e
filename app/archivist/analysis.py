"""Frequency tables over scraped plays.

Reads the ``plays`` collection into a pandas frame and writes genre,
publisher and cast-part frequency tables as CSV files plus one Excel workbook
under ``<OUTPUT_DIR>/analysis/``.
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from .config import ScraperConfig, load_config
from .config_validation import validate_runtime_config
from .errors import SetupError
from .store import DocumentStore
from .utils import log_line

PART_LABELS = ("male", "female", "other")
WORKBOOK_NAME = "analysis.xlsx"


def plays_frame(documents: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    return pd.DataFrame(list(documents))


def frequency_table(
    frame: pd.DataFrame,
    field: str,
    *,
    sort_by_field: bool = False,
    descending: bool = True,
) -> pd.DataFrame:
    """Count distinct non-empty values of ``field``.

    Sorted by count unless ``sort_by_field`` is set, in which case the values
    themselves are the sort key.
    """

    if frame.empty or field not in frame.columns:
        return pd.DataFrame(columns=[field, "count"])

    values = frame[field].dropna()
    values = values[values.astype(str).str.strip() != ""]
    table = values.value_counts().rename_axis(field).reset_index(name="count")
    sort_key = field if sort_by_field else "count"
    return table.sort_values(sort_key, ascending=not descending, kind="stable").reset_index(drop=True)


def parts_table(frame: pd.DataFrame) -> pd.DataFrame:
    """Frequency of every distinct parts text, split by part type."""

    columns = ["text", "frequency", *[f"{label}Parts" for label in PART_LABELS]]
    rows: List[Dict[str, Any]] = []
    for label in PART_LABELS:
        column = f"partsText{label.capitalize()}"
        if frame.empty or column not in frame.columns:
            continue
        texts = frame[column].dropna().astype(str)
        texts = texts[texts.str.strip() != ""]
        rows.extend({"text": text, "type": label} for text in texts)

    if not rows:
        return pd.DataFrame(columns=columns)

    parts = pd.DataFrame(rows)
    table = pd.crosstab(parts["text"], parts["type"])
    for label in PART_LABELS:
        if label not in table.columns:
            table[label] = 0
    table = table[list(PART_LABELS)].rename(columns={label: f"{label}Parts" for label in PART_LABELS})
    table.insert(0, "frequency", table.sum(axis=1))
    table = table.reset_index()
    table = table.sort_values("frequency", ascending=False, kind="stable").reset_index(drop=True)
    return table[columns]


def build_tables(frame: pd.DataFrame) -> Dict[str, pd.DataFrame]:
    return {
        "genres": frequency_table(frame, "genres"),
        "publisher": frequency_table(frame, "publisher", sort_by_field=True),
        "parts": parts_table(frame),
    }


def write_tables(tables: Mapping[str, pd.DataFrame], output_dir: Path) -> List[Path]:
    """Write each table to ``<name>-frequencies.csv`` and all of them to one workbook."""

    output_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for name, table in tables.items():
        path = output_dir / f"{name}-frequencies.csv"
        table.to_csv(path, index=False)
        written.append(path)

    workbook = output_dir / WORKBOOK_NAME
    with pd.ExcelWriter(workbook, engine="openpyxl") as writer:
        for name, table in tables.items():
            table.to_excel(writer, index=False, sheet_name=name.capitalize())
    written.append(workbook)
    return written


def run_analysis(cfg: ScraperConfig, store: Optional[DocumentStore] = None) -> List[Path]:
    store = store or DocumentStore(cfg.db_path)
    try:
        if not store.is_connected():
            try:
                store.connect()
            except Exception as exc:  # noqa: BLE001
                raise SetupError("DocumentStore failed to connect", exc) from exc
            if not store.is_connected():
                raise SetupError("DocumentStore connection attempt failed")

        frame = plays_frame(store.get_collection("plays").find())
        written = write_tables(build_tables(frame), Path(cfg.output_dir) / "analysis")
    finally:
        store.close()

    log_line(f"[ANALYSIS] Analysis complete. Written files: {len(written)}")
    for path in written:
        log_line(f"[ANALYSIS] - {path}")
    return written


def _cli_entrypoint(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Write frequency tables for scraped plays")
    parser.add_argument("--db-path", default=None, help="Override the store path")
    parser.add_argument("--output-dir", default=None, help="Override the output directory")
    args = parser.parse_args(argv)

    cfg = load_config(
        db_path=Path(args.db_path) if args.db_path else None,
        output_dir=Path(args.output_dir) if args.output_dir else None,
    )
    try:
        cfg = validate_runtime_config(cfg, entrypoint="analysis")
        run_analysis(cfg)
    except (ValueError, SetupError) as exc:
        log_line(f"[ANALYSIS] Fatal error during analysis: {exc}", logging.ERROR)
        return 1
    return 0


__all__ = [
    "build_tables",
    "frequency_table",
    "parts_table",
    "plays_frame",
    "run_analysis",
    "write_tables",
]


if __name__ == "__main__":
    raise SystemExit(_cli_entrypoint())
