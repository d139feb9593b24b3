"""Loaded analytics data for one running application.

``AnalyticsState`` owns the currently loaded content and overview rows.
Persistence is optional and injected as a ``StateStorage``; without one the
state lives only in process memory.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, Protocol

from fastapi import Request

from post_insights.models import ContentRow, OverviewRow
from post_insights.sample_data import (
    DEMO_CONTENT_FILE,
    DEMO_OVERVIEW_FILE,
    demo_content_rows,
    demo_overview_rows,
)

logger = logging.getLogger(__name__)


class StateStorage(Protocol):
    def read(self) -> dict[str, Any] | None: ...

    def write(self, snapshot: dict[str, Any] | None) -> None: ...


class MemoryStorage:
    """Keeps the last written snapshot in memory. Useful in tests."""

    def __init__(self, snapshot: dict[str, Any] | None = None):
        self.snapshot = snapshot
        self.writes = 0

    def read(self) -> dict[str, Any] | None:
        return self.snapshot

    def write(self, snapshot: dict[str, Any] | None) -> None:
        self.snapshot = snapshot
        self.writes += 1


class JsonFileStorage:
    """Stores the snapshot as a JSON document on disk.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash never leaves a half-written snapshot. Writing
    ``None`` deletes the file.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def read(self) -> dict[str, Any] | None:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self.path, exc)
            return None

    def write(self, snapshot: dict[str, Any] | None) -> None:
        if snapshot is None:
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(snapshot, fh)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class AnalyticsState:
    def __init__(self, storage: StateStorage | None = None):
        self._storage = storage
        self.content_rows: list[ContentRow] = []
        self.overview_rows: list[OverviewRow] = []
        self.content_file_name = ""
        self.overview_file_name = ""
        self.content_missing_optional: list[str] = []
        self.overview_missing_optional: list[str] = []
        self._restore()

    @property
    def has_content(self) -> bool:
        return bool(self.content_rows)

    @property
    def has_overview(self) -> bool:
        return bool(self.overview_rows)

    def load_content(
        self,
        rows: Iterable[ContentRow],
        file_name: str = "",
        missing_optional: Iterable[str] = (),
    ) -> None:
        """Replace the loaded content rows."""
        self.content_rows = list(rows)
        self.content_file_name = file_name
        self.content_missing_optional = list(missing_optional)
        logger.info("Loaded %d content rows from %s", len(self.content_rows), file_name or "<unnamed>")
        self._persist()

    def load_overview(
        self,
        rows: Iterable[OverviewRow],
        file_name: str = "",
        missing_optional: Iterable[str] = (),
    ) -> None:
        """Replace the loaded overview rows."""
        self.overview_rows = list(rows)
        self.overview_file_name = file_name
        self.overview_missing_optional = list(missing_optional)
        logger.info("Loaded %d overview rows from %s", len(self.overview_rows), file_name or "<unnamed>")
        self._persist()

    def load_demo(self) -> None:
        self.content_rows = demo_content_rows()
        self.overview_rows = demo_overview_rows()
        self.content_file_name = DEMO_CONTENT_FILE
        self.overview_file_name = DEMO_OVERVIEW_FILE
        self.content_missing_optional = []
        self.overview_missing_optional = []
        logger.info("Loaded demo dataset")
        self._persist()

    def clear(self) -> None:
        self._reset()
        logger.info("Cleared analytics state")
        if self._storage is not None:
            self._storage.write(None)

    def snapshot(self) -> dict[str, Any]:
        """JSON-ready copy of the state, rows in their canonical shape."""
        return {
            "contentRows": [row.to_dict() for row in self.content_rows],
            "overviewRows": [row.to_dict() for row in self.overview_rows],
            "contentFileName": self.content_file_name,
            "overviewFileName": self.overview_file_name,
            "contentMissingOptional": list(self.content_missing_optional),
            "overviewMissingOptional": list(self.overview_missing_optional),
        }

    def _reset(self) -> None:
        self.content_rows = []
        self.overview_rows = []
        self.content_file_name = ""
        self.overview_file_name = ""
        self.content_missing_optional = []
        self.overview_missing_optional = []

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.write(self.snapshot())

    def _restore(self) -> None:
        if self._storage is None:
            return
        data = self._storage.read()
        if not data:
            return
        try:
            self.content_rows = [ContentRow.from_dict(r) for r in data.get("contentRows", [])]
            self.overview_rows = [OverviewRow.from_dict(r) for r in data.get("overviewRows", [])]
            self.content_file_name = data.get("contentFileName", "")
            self.overview_file_name = data.get("overviewFileName", "")
            self.content_missing_optional = list(data.get("contentMissingOptional", []))
            self.overview_missing_optional = list(data.get("overviewMissingOptional", []))
        except (TypeError, AttributeError) as exc:
            logger.warning("Discarding malformed state snapshot: %s", exc)
            self._reset()
            return
        logger.info(
            "Restored %d content rows and %d overview rows",
            len(self.content_rows),
            len(self.overview_rows),
        )


def get_state(request: Request) -> AnalyticsState:
    """FastAPI dependency that returns the application's analytics state."""
    return request.app.state.analytics
