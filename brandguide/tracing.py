"""
Tracing
=======
Optional debug-artifact collaborator. The coordinator and orchestrator
call `record(tag, content)` at each stage; the core never writes files
itself.

    NullTracer        - discards everything (default)
    DirectoryTracer   - writes <n>_<tag>.txt / <n>_<tag>.json files
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_UNSAFE_TAG = re.compile(r"[^A-Za-z0-9_.-]+")


class Tracer(Protocol):
    def record(self, tag: str, content: Any) -> None:
        ...


class NullTracer:
    def record(self, tag: str, content: Any) -> None:
        return None


def _jsonable(content: Any) -> Any:
    if isinstance(content, BaseModel):
        return content.model_dump(by_alias=True, mode="json")
    if isinstance(content, (list, tuple)):
        return [_jsonable(item) for item in content]
    if isinstance(content, dict):
        return {str(key): _jsonable(value) for key, value in content.items()}
    return content


class DirectoryTracer:
    """
    Writes each recorded artifact to its own numbered file so the
    directory listing reads in pipeline order.
    """

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._count = 0

    def record(self, tag: str, content: Any) -> None:
        self._count += 1
        stem = f"{self._count:02d}_{_UNSAFE_TAG.sub('_', tag)}"

        if isinstance(content, str):
            self._save_text(content, self.directory / f"{stem}.txt")
        else:
            self._save_json(_jsonable(content), self.directory / f"{stem}.json")

    def _save_text(self, text: str, filepath: Path):
        try:
            filepath.write_text(text, encoding="utf-8")
            logger.debug(f"Trace saved: {filepath}")
        except OSError as e:
            logger.error(f"Failed to save trace {filepath}: {e}")

    def _save_json(self, data: Any, filepath: Path):
        try:
            with open(filepath, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            logger.debug(f"Trace saved: {filepath}")
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save trace {filepath}: {e}")
