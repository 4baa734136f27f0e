from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from app.archivist.errors import FileWriteError
from app.archivist.file_writer import FileWriter
from app.archivist.review_queue import UNSPECIFIED_REASON, ReviewQueue, review_file_path


def test_file_writer_writes_json_and_index(tmp_path: Path) -> None:
    writer = FileWriter("plays", tmp_path)

    path = writer.write_file("012345-the-sea.json", {"title": "The Sea", "scrapedAt": datetime(2024, 1, 1)})
    writer.write_file("012345-the-sea.json", {"title": "The Sea"})
    writer.close()

    assert path == tmp_path / "plays" / "012345-the-sea.json"
    assert json.loads(path.read_text(encoding="utf-8")) == {"title": "The Sea"}
    index = json.loads((tmp_path / "plays" / "index.json").read_text(encoding="utf-8"))
    assert index["module"] == "plays"
    assert index["files"] == {"012345-the-sea": "012345-the-sea.json"}
    assert writer.is_ready is False


def test_file_writer_appends_extension_from_file_type(tmp_path: Path) -> None:
    writer = FileWriter("notes", tmp_path)

    path = writer.write_file("readme", "plain text", stringify=False, file_type="txt")

    assert path.name == "readme.txt"
    assert path.read_text(encoding="utf-8") == "plain text"


@pytest.mark.parametrize(
    "filename, data, kwargs",
    [
        ("", {"a": 1}, {}),
        ("author", {"a": 1}, {}),
        ("author.csv", {"a": 1}, {}),
        ("author.json", {"a": 1}, {"file_type": "txt"}),
        ("author.json", "text", {}),
        ("author.txt", {"a": 1}, {"stringify": False}),
    ],
)
def test_file_writer_rejects_invalid_arguments(tmp_path: Path, filename, data, kwargs) -> None:
    writer = FileWriter("authors", tmp_path)

    with pytest.raises(FileWriteError):
        writer.write_file(filename, data, **kwargs)


def test_file_writer_refuses_writes_after_close(tmp_path: Path) -> None:
    writer = FileWriter("authors", tmp_path)
    writer.close()

    with pytest.raises(FileWriteError):
        writer.write_file("a.json", {"a": 1})
    assert not (tmp_path / "authors" / "index.json").exists()


def test_file_writer_requires_module_name(tmp_path: Path) -> None:
    with pytest.raises(FileWriteError):
        FileWriter("  ", tmp_path)


def test_review_queue_rewrites_file_after_every_addition(tmp_path: Path) -> None:
    started = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)
    path = review_file_path(tmp_path, started)
    queue = ReviewQueue(path, created_at=started)

    queue.add_skipped_author("SMITH John", "https://x/smith.php", "scraping error")
    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert on_disk["metadata"]["authors"] == {"skipped": 1, "flagged": 0, "totalForReview": 1}

    queue.add_skipped_play("SMITH John", "https://x/smith.php", "writing error", play_id="12345", title="The Sea")
    queue.add_flagged_author(
        "DOE Jane",
        {"_id": "a2", "name": "Jane Doe", "metadata": {"needsReviewData": {"First Name": {}}}},
        filename="doe-jane.json",
        url="https://x/doe.php",
    )
    queue.add_flagged_play(
        "DOE Jane",
        title="Draft",
        play_id="0000000",
        author_name="Jane Doe",
        author_id="a2",
        url="https://x/doe.php",
        filename="000000-draft.json",
    )

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert path.name.startswith("review-2024_05_01T09_30_00_000")
    assert payload["metadata"]["plays"] == {"skipped": 1, "flagged": 1, "totalForReview": 2}
    assert payload["skippedEntries"]["plays"][0] == {
        "profileName": "SMITH John",
        "url": "https://x/smith.php",
        "id": "12345",
        "title": "The Sea",
        "reason": "writing error",
    }
    flagged_author = payload["flaggedEntries"]["authors"][0]
    assert flagged_author["reason"] == UNSPECIFIED_REASON
    assert flagged_author["url"] == "https://x/doe.php"
    assert flagged_author["needsReviewData"] == {"First Name": {}}


def test_review_queue_write_failure_sets_error_flag(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", encoding="utf-8")
    queue = ReviewQueue(blocker / "review.json")

    queue.add_skipped_author("SMITH John", "u", "processing error")

    assert queue.has_error is True
