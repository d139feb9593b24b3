"""File upload routes: multi-file CSV upload and state lifecycle endpoints."""

import logging
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from post_insights.config import settings
from post_insights.ingest import UploadedCsv, ingest_batch
from post_insights.state import AnalyticsState, get_state

# Chunk size for streaming reads (1 MiB)
_CHUNK_SIZE = 1024 * 1024

logger = logging.getLogger(__name__)

router = APIRouter()


async def _read_upload(file: UploadFile, max_bytes: int) -> UploadedCsv:
    """Read an upload in chunks, keeping at most ``max_bytes``.

    Oversize bodies are still counted to the end so the rejection can report
    the real size, but their bytes are discarded.
    """
    name = Path(file.filename or "upload.csv").name
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total <= max_bytes:
            chunks.append(chunk)
        elif chunks:
            chunks.clear()
    if total > max_bytes:
        return UploadedCsv(name=name, data=b"", declared_size=total)
    return UploadedCsv(name=name, data=b"".join(chunks))


@router.post("/api/upload")
async def upload_files(
    files: list[UploadFile] | None = File(None),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Ingest one or more CSV exports.

    Files are processed in the order submitted. Data problems never fail
    the request; they come back as per-file messages.

    Returns:
        JSON with total, accepted, the flattened message list and per-file
        reports (kind, rowCount, truncated, messages).
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files provided.")

    limits = settings.limits
    uploads: list[UploadedCsv] = []
    for index, file in enumerate(files):
        if index >= limits.max_files_per_upload:
            # Counted for the limit warning, never read.
            uploads.append(UploadedCsv(name=Path(file.filename or "upload.csv").name, data=b""))
            continue
        uploads.append(await _read_upload(file, limits.max_file_size_bytes))

    report = ingest_batch(uploads, state, limits)
    return report.to_dict()


@router.post("/api/demo")
async def load_demo(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Replace loaded data with the built-in demo dataset."""
    state.load_demo()
    return _data_status(state)


@router.delete("/api/data")
async def clear_data(state: AnalyticsState = Depends(get_state)) -> dict[str, Any]:
    """Drop all loaded rows."""
    state.clear()
    return _data_status(state)


@router.get("/api/data")
async def data_status(
    include_rows: bool = Query(False),
    state: AnalyticsState = Depends(get_state),
) -> dict[str, Any]:
    """Describe what is currently loaded (file names, counts, missing columns).

    Args:
        include_rows: Also return the loaded rows in their canonical shape.
    """
    status = _data_status(state)
    if include_rows:
        snapshot = state.snapshot()
        status["content"]["rows_data"] = snapshot["contentRows"]
        status["overview"]["rows_data"] = snapshot["overviewRows"]
    return status


def _data_status(state: AnalyticsState) -> dict[str, Any]:
    return {
        "content": {
            "file_name": state.content_file_name,
            "rows": len(state.content_rows),
            "missing_optional": state.content_missing_optional,
        },
        "overview": {
            "file_name": state.overview_file_name,
            "rows": len(state.overview_rows),
            "missing_optional": state.overview_missing_optional,
        },
    }
