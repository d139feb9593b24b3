"""CSV analytics export ingestion pipeline.

Validates uploaded files, tokenizes them, works out which export each one
is, normalizes the rows and loads them into the application state.

Data-quality problems never raise. Every outcome becomes a ``Message`` on
the file's ``FileReport``, in the order it happened:
  1. Files past the per-upload limit are skipped (one batch warning)
  2. Wrong extension or oversize files are rejected before parsing
  3. Parser errors, missing headers, missing columns, value warnings
  4. One success line per loaded file, plus an auto-detection note when
     the schema was found by trial normalization
Files are processed one after another in submission order.
"""

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from post_insights.classify import Ambiguous, Classified, FileKind, Rejected, resolve_schema
from post_insights.csv_parser import parse_csv
from post_insights.models import NormalizationResult, field_label
from post_insights.state import AnalyticsState

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".csv"}

_MB = 1024 * 1024


@dataclass(frozen=True)
class Limits:
    """Upload ceilings. Each one is enforced on its own."""

    max_file_size_bytes: int = 12 * _MB
    max_rows_per_file: int = 120_000
    max_files_per_upload: int = 6


class Severity(str, enum.Enum):
    SUCCESS = "success"
    WARN = "warn"
    ERROR = "error"
    INFO = "info"


@dataclass(frozen=True)
class Message:
    severity: Severity
    text: str

    def to_dict(self) -> dict[str, str]:
        return {"severity": self.severity.value, "text": self.text}


@dataclass(frozen=True)
class UploadedCsv:
    """One file of an upload batch, fully read into memory."""

    name: str
    data: bytes
    # Size as received, for uploads whose bytes were not kept in full
    declared_size: int | None = None

    @property
    def size(self) -> int:
        return self.declared_size if self.declared_size is not None else len(self.data)


@dataclass
class FileReport:
    """Everything that happened to one uploaded file."""

    file_name: str
    kind: FileKind | None = None
    row_count: int = 0
    truncated: bool = False
    accepted: bool = False
    messages: list[Message] = field(default_factory=list)

    def add(self, severity: Severity, text: str) -> None:
        self.messages.append(Message(severity, f"{self.file_name}: {text}"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "fileName": self.file_name,
            "kind": self.kind.value if self.kind else None,
            "rowCount": self.row_count,
            "truncated": self.truncated,
            "accepted": self.accepted,
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass
class BatchReport:
    files: list[FileReport] = field(default_factory=list)
    # Messages about the batch as a whole rather than any one file
    messages: list[Message] = field(default_factory=list)

    @property
    def all_messages(self) -> list[Message]:
        return [*self.messages, *(m for report in self.files for m in report.messages)]

    @property
    def accepted(self) -> int:
        return sum(1 for report in self.files if report.accepted)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": len(self.files),
            "accepted": self.accepted,
            "messages": [m.to_dict() for m in self.all_messages],
            "files": [report.to_dict() for report in self.files],
        }


class IngestError(Exception):
    """Raised when ingestion cannot proceed."""


def format_missing(missing: Iterable[str]) -> str:
    """Join canonical field names as their user-facing labels."""
    return ", ".join(field_label(name) for name in missing)


def check_upload(name: str, size: int, limits: Limits) -> str | None:
    """Return the rejection reason for a file, or None when it may be parsed."""
    if Path(name).suffix.lower() not in ALLOWED_EXTENSIONS:
        return "Unsupported file type. Please upload CSV files only."
    if size > limits.max_file_size_bytes:
        return (
            f"File is too large ({size / _MB:.1f} MB). "
            f"Maximum allowed is {limits.max_file_size_bytes / _MB:g} MB."
        )
    return None


def _load(
    report: FileReport,
    kind: FileKind,
    result: NormalizationResult,
    state: AnalyticsState,
    row_count: int,
) -> None:
    if kind is FileKind.CONTENT:
        state.load_content(result.rows, report.file_name, result.missing_optional)
        limited_note = "Metrics may be limited."
    else:
        state.load_overview(result.rows, report.file_name, result.missing_optional)
        limited_note = "Some trends may be hidden."

    report.kind = kind
    report.accepted = True
    if result.missing_optional:
        report.add(
            Severity.WARN,
            f"Optional columns missing ({format_missing(result.missing_optional)}). {limited_note}",
        )
    for warning in result.warnings:
        report.add(Severity.WARN, warning)
    report.add(Severity.SUCCESS, f"Loaded {kind.value} analytics ({row_count:,} rows).")


def ingest_csv(upload: UploadedCsv, state: AnalyticsState, limits: Limits | None = None) -> FileReport:
    """Validate, parse, classify and load a single file."""
    limits = limits or Limits()
    report = FileReport(file_name=upload.name)

    rejection = check_upload(upload.name, upload.size, limits)
    if rejection:
        logger.warning("Rejected upload '%s': %s", upload.name, rejection)
        report.add(Severity.ERROR, rejection)
        return report

    parsed = parse_csv(upload.data, max_rows=limits.max_rows_per_file)
    report.row_count = parsed.row_count
    report.truncated = parsed.truncated
    if parsed.errors:
        report.add(Severity.ERROR if parsed.truncated else Severity.WARN, "; ".join(parsed.errors))

    if not parsed.fields:
        logger.warning("No headers detected in '%s'", upload.name)
        report.add(Severity.ERROR, "CSV headers were not detected.")
        return report

    resolution = resolve_schema(parsed, upload.name)
    if isinstance(resolution, Classified):
        if resolution.result.ok:
            _load(report, resolution.kind, resolution.result, state, parsed.row_count)
        else:
            report.kind = resolution.kind
            report.add(
                Severity.ERROR,
                f"Missing required {resolution.kind.value} columns "
                f"({format_missing(resolution.result.missing_required)}).",
            )
    elif isinstance(resolution, Ambiguous):
        _load(report, resolution.kind, resolution.result, state, parsed.row_count)
        report.add(Severity.INFO, f"Auto-detected this file as {resolution.kind.value} analytics.")
    elif isinstance(resolution, Rejected):
        report.add(
            Severity.ERROR,
            f"Could not classify CSV. Missing required columns ({format_missing(resolution.missing)}).",
        )

    if report.accepted:
        logger.info("Imported '%s' as %s: %d rows", upload.name, report.kind.value, parsed.row_count)
    else:
        logger.warning("Could not import '%s'", upload.name)
    return report


def ingest_batch(
    files: list[UploadedCsv],
    state: AnalyticsState,
    limits: Limits | None = None,
) -> BatchReport:
    """Ingest an upload batch sequentially, in submission order.

    Args:
        files: Uploaded files in the order they were submitted.
        state: Destination for accepted rows. Each accepted file replaces
            the previously loaded rows of its kind.
        limits: Upload ceilings; defaults apply when omitted.

    Returns:
        BatchReport with one FileReport per processed file.
    """
    limits = limits or Limits()
    report = BatchReport()

    if len(files) > limits.max_files_per_upload:
        logger.warning(
            "Upload of %d files truncated to the first %d",
            len(files),
            limits.max_files_per_upload,
        )
        report.messages.append(
            Message(
                Severity.WARN,
                f"Only the first {limits.max_files_per_upload} files were processed in this upload.",
            )
        )

    for upload in files[: limits.max_files_per_upload]:
        report.files.append(ingest_csv(upload, state, limits))

    logger.info("Processed upload batch: %d/%d files accepted", report.accepted, len(report.files))
    return report


def ingest_path(path: Path | str, state: AnalyticsState, limits: Limits | None = None) -> FileReport:
    """Ingest a CSV file from disk through the same pipeline as uploads.

    Raises:
        IngestError: If the path does not exist or is not a regular file.
    """
    path = Path(path)
    if not path.exists():
        raise IngestError(f"File not found: {path}")
    if not path.is_file():
        raise IngestError(f"Not a file: {path}")
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise IngestError(f"Failed to read {path}: {exc}") from exc
    return ingest_csv(UploadedCsv(name=path.name, data=data), state, limits)
