from __future__ import annotations

"""CLI helper for printing a run's review-queue file."""

import argparse
import json
from collections import Counter
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from .config import load_config
from .utils import load_json_file


def latest_review_file(review_dir: Path) -> Optional[Path]:
    """Return the newest ``review-*.json`` in ``review_dir``, if any.

    Review filenames embed the run start time, so name order is run order.
    """

    if not review_dir.is_dir():
        return None
    files = sorted(review_dir.glob("review-*.json"))
    return files[-1] if files else None


def format_review(payload: Mapping[str, Any], path: Path) -> str:
    metadata = payload.get("metadata") or {}
    lines = [f"Review file {path}"]
    if metadata.get("createdAt"):
        lines.append(f"  created: {metadata['createdAt']}")

    for kind in ("authors", "plays"):
        counts = metadata.get(kind) or {}
        lines.append(
            f"  {kind}: skipped={counts.get('skipped', 0)} "
            f"flagged={counts.get('flagged', 0)} "
            f"totalForReview={counts.get('totalForReview', 0)}"
        )

    skipped = payload.get("skippedEntries") or {}
    for kind in ("authors", "plays"):
        reasons = Counter(entry.get("reason") or "(unspecified reason)" for entry in skipped.get(kind, []))
        if reasons:
            lines.append(f"\nSkipped {kind} by reason:")
            for reason, count in sorted(reasons.items()):
                lines.append(f"  {reason}: {count}")

    flagged = payload.get("flaggedEntries") or {}
    flagged_authors = flagged.get("authors", [])
    if flagged_authors:
        lines.append("\nFlagged authors:")
        for entry in flagged_authors:
            lines.append(f"  {entry.get('profileName', '')}: {entry.get('reason', '')}")

    return "\n".join(lines)


def _build_parser() -> argparse.ArgumentParser:
    """Return an argument parser for the review summary CLI."""

    parser = argparse.ArgumentParser(
        description="Show the review queue written by a scraper run.",
    )
    parser.add_argument(
        "--path",
        type=Path,
        help="Review file to summarise.",
    )
    parser.add_argument(
        "--latest",
        action="store_true",
        help="Summarise the most recent review file.",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the review summary CLI."""

    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    path = args.path
    if args.latest and path is None:
        path = latest_review_file(load_config().review_dir)
    if path is None:
        parser.error("You must provide --path or --latest (no review file found)")

    try:
        payload = load_json_file(path)
    except (OSError, json.JSONDecodeError) as exc:
        parser.error(f"Unable to read review file {path}: {exc}")

    print(format_review(payload, path))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry
    raise SystemExit(main())
