"""Skipped and flagged records awaiting human review.

The queue is rewritten in full after every addition so an interrupted run
still leaves a complete, valid review file behind.
"""
from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .utils import file_timestamp, log_line, save_json_file, utc_now

UNSPECIFIED_REASON = "(unspecified reason)"


def review_file_path(review_dir: Path, started_at: datetime) -> Path:
    return Path(review_dir) / f"review-{file_timestamp(started_at)}.json"


class ReviewQueue:
    def __init__(self, path: Path, created_at: Optional[datetime] = None) -> None:
        self.path = Path(path)
        self.created_at = created_at or utc_now()
        self.skipped: Dict[str, List[Dict[str, Any]]] = {"authors": [], "plays": []}
        self.flagged: Dict[str, List[Dict[str, Any]]] = {"authors": [], "plays": []}
        self.has_error = False

    def add_skipped_author(self, profile_name: str, url: str, reason: str) -> None:
        self.skipped["authors"].append({"profileName": profile_name, "url": url, "reason": reason})
        self.write()

    def add_skipped_play(
        self,
        profile_name: str,
        url: str,
        reason: str,
        *,
        play_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> None:
        entry: Dict[str, Any] = {"profileName": profile_name, "url": url}
        if play_id:
            entry["id"] = play_id
        if title:
            entry["title"] = title
        entry["reason"] = reason
        self.skipped["plays"].append(entry)
        self.write()

    def add_flagged_author(
        self, profile_name: str, document: Mapping[str, Any], *, filename: str, url: str = ""
    ) -> None:
        metadata = document.get("metadata") or {}
        entry: Dict[str, Any] = {
            "profileName": profile_name,
            "id": str(document.get("_id") or ""),
            "name": document.get("name") or "",
            "url": metadata.get("sourceUrl") or url,
            "filename": filename,
            "reason": metadata.get("needsReviewReason") or UNSPECIFIED_REASON,
        }
        if metadata.get("needsReviewData"):
            entry["needsReviewData"] = metadata["needsReviewData"]
        self.flagged["authors"].append(entry)
        self.write()

    def add_flagged_play(
        self,
        profile_name: str,
        *,
        title: str,
        play_id: str,
        author_name: str,
        author_id: str,
        url: str,
        filename: str,
    ) -> None:
        self.flagged["plays"].append(
            {
                "profileName": profile_name,
                "title": title,
                "id": play_id,
                "authorName": author_name,
                "authorId": author_id,
                "url": url,
                "filename": filename,
            }
        )
        self.write()

    def counts(self) -> Dict[str, Dict[str, int]]:
        result = {}
        for kind in ("plays", "authors"):
            skipped = len(self.skipped[kind])
            flagged = len(self.flagged[kind])
            result[kind] = {"skipped": skipped, "flagged": flagged, "totalForReview": skipped + flagged}
        return result

    def payload(self) -> Dict[str, Any]:
        return {
            "metadata": {"createdAt": self.created_at, "lastUpdated": utc_now(), **self.counts()},
            "skippedEntries": self.skipped,
            "flaggedEntries": self.flagged,
        }

    def write(self) -> None:
        try:
            save_json_file(self.path, self.payload())
        except OSError as exc:
            self.has_error = True
            log_line(f"[REVIEW] Failed to write review file {self.path}: {exc}", logging.ERROR)


__all__ = ["ReviewQueue", "UNSPECIFIED_REASON", "review_file_path"]
