from __future__ import annotations

"""File output adapter used instead of the document store when writing files."""

import json
from pathlib import Path
from typing import Any, List, Mapping, Optional

from . import config
from .errors import FileWriteError
from .utils import json_default, log_line, save_json_file, utc_now

FILE_TYPES = ("json", "txt")


class FileWriter:
    """Write one module's records under ``<output_dir>/<module_name>/``.

    ``close()`` writes an ``index.json`` mapping every written file's key to
    its filename so the directory can be loaded as a unit.
    """

    def __init__(self, module_name: str, output_dir: Path | str | None = None) -> None:
        if not module_name or not module_name.strip():
            raise FileWriteError("Module name must be a non-empty string")
        self.module_name = module_name
        self.output_dir = Path(output_dir or config.OUTPUT_DIR) / module_name
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.filenames: List[str] = []
        self._ready = True

    @property
    def is_ready(self) -> bool:
        return self._ready

    def _resolve_file_type(self, filename: str, file_type: Optional[str]) -> str:
        extension = filename.rsplit(".", 1)[-1] if "." in filename else ""
        if file_type is None:
            if extension not in FILE_TYPES:
                raise FileWriteError(
                    "When file_type is not given, filename must have a .json or .txt extension"
                )
            return extension
        if file_type not in FILE_TYPES:
            raise FileWriteError(f"Unsupported file type: {file_type!r}")
        if extension and extension != file_type:
            raise FileWriteError(
                f"Filename extension .{extension} does not match file type {file_type}"
            )
        return file_type

    def write_file(
        self,
        filename: str,
        data: Mapping[str, Any] | str,
        *,
        stringify: bool = True,
        file_type: Optional[str] = None,
    ) -> Path:
        """Validate and write ``data``; returns the written path."""

        if not self._ready:
            raise FileWriteError(f"Writer for {self.module_name!r} is closed")
        if not filename or not filename.strip():
            raise FileWriteError("Filename must be a non-empty string")
        resolved_type = self._resolve_file_type(filename, file_type)
        if stringify and not isinstance(data, Mapping):
            raise FileWriteError("Data must be a mapping when stringify is true")
        if not stringify and not isinstance(data, str):
            raise FileWriteError("Data must be a string; use stringify to write mapping data")

        stem = filename[: -(len(resolved_type) + 1)] if filename.endswith(f".{resolved_type}") else filename
        full_name = f"{stem}.{resolved_type}"
        path = self.output_dir / full_name
        content = (
            json.dumps(data, ensure_ascii=False, indent=2, default=json_default)
            if stringify
            else str(data)
        )
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise FileWriteError(f"Error writing file {path}: {exc}") from exc

        if full_name not in self.filenames:
            self.filenames.append(full_name)
        return path

    def close(self, *, write_index: bool = True) -> None:
        if not self._ready:
            return
        self._ready = False
        if not write_index or not self.filenames:
            return
        index = {
            "module": self.module_name,
            "generatedAt": utc_now(),
            "files": {name.rsplit(".", 1)[0]: name for name in self.filenames},
        }
        save_json_file(self.output_dir / "index.json", index)
        log_line(f"[FILES] Wrote {len(self.filenames)} {self.module_name} files to {self.output_dir}")


__all__ = ["FILE_TYPES", "FileWriter"]
