"""Run statistics shared by the orchestrator, display and run summary."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from .error_codes import ErrorCode


@dataclass
class GlobalStats:
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    batch_size: int = 0
    batch_count: int = 0
    completed_batch_count: int = 0
    total_adaptations: int = 0
    files_written: int = 0


@dataclass
class CurrentStats:
    batch_index: int = 0
    author_index: int = 0
    play_index: int = 0
    authors_in_batch: int = 0
    plays_for_author: int = 0
    first_author_name: str = ""
    last_author_name: str = ""
    author_url: str = ""


@dataclass
class UnitStats:
    """Written/skipped/flagged counters for one kind of record.

    ``batch_*`` counters reset at every batch boundary; ``total_*`` never do.
    """

    total_written: int = 0
    total_skipped: int = 0
    total_flagged: int = 0
    batch_written: int = 0
    batch_skipped: int = 0
    batch_flagged: int = 0

    def written(self, *, flagged: bool = False) -> None:
        """Count a successful write; flagged records count only as flagged."""

        if flagged:
            self.total_flagged += 1
            self.batch_flagged += 1
        else:
            self.total_written += 1
            self.batch_written += 1

    def skipped(self) -> None:
        self.total_skipped += 1
        self.batch_skipped += 1

    def reset_batch(self) -> None:
        self.batch_written = 0
        self.batch_skipped = 0
        self.batch_flagged = 0


@dataclass
class RunStats:
    globals: GlobalStats = field(default_factory=GlobalStats)
    current: CurrentStats = field(default_factory=CurrentStats)
    authors: UnitStats = field(default_factory=UnitStats)
    plays: UnitStats = field(default_factory=UnitStats)
    errors: Dict[str, int] = field(default_factory=lambda: {code: 0 for code in ErrorCode.ALL})

    def record_error(self, code: str) -> None:
        key = code if code in self.errors else ErrorCode.OTHER
        self.errors[key] += 1

    def start_batch(self, index: int, size: int, first_name: str, last_name: str) -> None:
        self.authors.reset_batch()
        self.plays.reset_batch()
        self.current.batch_index = index
        self.current.author_index = 0
        self.current.play_index = 0
        self.current.authors_in_batch = size
        self.current.first_author_name = first_name
        self.current.last_author_name = last_name

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def success_rate(successes: int, skips: int) -> str:
    """Percentage of successful units to one decimal; ``100.0`` when idle."""

    if successes + skips == 0:
        return "100.0"
    return f"{successes / (successes + skips) * 100:.1f}"


__all__ = ["CurrentStats", "GlobalStats", "RunStats", "UnitStats", "success_rate"]
