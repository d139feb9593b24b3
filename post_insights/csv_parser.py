"""CSV tokenizer for uploaded analytics exports.

Turns a byte source into header-labeled rows. Parsing never raises for bad
content: malformed records and shape mismatches are collected into
``errors`` and the rest of the file is still returned.
"""

import csv
import io
import logging
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

logger = logging.getLogger(__name__)


@dataclass
class ParsedCsv:
    """Header-labeled rows plus parser diagnostics for one file."""

    rows: list[dict[str, str | None]] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    row_count: int = 0
    truncated: bool = False


def _is_blank(cells: list[str]) -> bool:
    return all(not (c or "").strip() for c in cells)


def _label_columns(header: list[str]) -> list[tuple[int, str]]:
    """Return (column index, label) for every labeled header cell.

    Blank header cells are dropped. Repeated labels get ``_1``, ``_2``
    suffixes so later columns do not overwrite earlier ones.
    """
    labeled: list[tuple[int, str]] = []
    seen: dict[str, int] = {}
    taken: set[str] = set()
    for index, raw in enumerate(header):
        label = (raw or "").strip()
        if not label:
            continue
        if label in taken:
            suffix = seen.get(label, 0)
            candidate = label
            while candidate in taken:
                suffix += 1
                candidate = f"{label}_{suffix}"
            seen[label] = suffix
            label = candidate
        taken.add(label)
        labeled.append((index, label))
    return labeled


def _open_binary(source: BinaryIO | bytes | Path | str) -> tuple[BinaryIO, bool]:
    """Return (binary stream, whether this module owns and must close it)."""
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(source), True
    if isinstance(source, (str, Path)):
        return open(source, "rb"), True
    return source, False


class _LineSource:
    """Line iterator feeding ``csv.reader`` that remembers the current record.

    Lines read for the record in progress are kept in ``record_lines`` so a
    record the strict reader rejects can be re-read leniently. Lines pushed
    back are served again before the stream continues.
    """

    def __init__(self, stream: io.TextIOWrapper):
        self._stream = stream
        self._pending: deque[str] = deque()
        self.record_lines: list[str] = []
        self.exhausted = False

    def __iter__(self):
        return self

    def __next__(self) -> str:
        if self._pending:
            line = self._pending.popleft()
        else:
            line = self._stream.readline()
            if not line:
                self.exhausted = True
                raise StopIteration
        self.record_lines.append(line)
        return line

    def start_record(self) -> None:
        self.record_lines = []

    def push_back(self, lines: list[str]) -> None:
        self._pending.extendleft(reversed(lines))
        self.exhausted = False


def _recover_record(lines: _LineSource) -> tuple[list[str], str]:
    """Re-read a record the strict reader rejected.

    Returns the recovered cells and the error message for the record. An
    opening quote that is never closed would otherwise consume the rest of
    the file, so only its first line is kept (quote taken literally) and the
    following lines are parsed again as ordinary records.
    """
    raw = lines.record_lines
    if lines.exhausted and "".join(raw).count('"') % 2 == 1:
        lines.push_back(raw[1:])
        first = raw[0].rstrip("\r\n")
        cells = next(csv.reader([first], quoting=csv.QUOTE_NONE), [])
        return cells, "Quoted field unterminated."
    cells = next(csv.reader(raw, strict=False), [])
    return cells, "Trailing quote on quoted field is malformed."


def parse_csv(
    source: BinaryIO | bytes | Path | str,
    max_rows: int | None = None,
) -> ParsedCsv:
    """Parse a CSV byte source into labeled rows.

    Args:
        source: Binary file object, raw bytes, or a path to read.
        max_rows: Stop after this many non-blank data rows.

    Returns:
        ParsedCsv. On I/O or decoding failure, an empty result carrying a
        single error message.
    """
    result = ParsedCsv()
    raw: BinaryIO | None = None
    owned = False
    stream: io.TextIOWrapper | None = None
    try:
        raw, owned = _open_binary(source)
        stream = io.TextIOWrapper(raw, encoding="utf-8-sig", newline="")
        lines = _LineSource(stream)
        reader = csv.reader(lines, strict=True)
        columns: list[tuple[int, str]] | None = None
        data_row = 0

        while True:
            lines.start_record()
            quote_error = None
            try:
                cells = next(reader)
            except StopIteration:
                break
            except csv.Error as exc:
                logger.debug("Strict CSV read failed, recovering record: %s", exc)
                cells, quote_error = _recover_record(lines)

            if _is_blank(cells):
                if quote_error:
                    result.errors.append(f"Row {data_row + 1}: {quote_error}")
                continue

            if columns is None:
                if quote_error:
                    result.errors.append(f"Header: {quote_error}")
                columns = _label_columns(cells)
                result.fields = [label for _, label in columns]
                header_width = len(cells)
                continue

            data_row += 1
            if quote_error:
                result.errors.append(f"Row {data_row}: {quote_error}")
            if len(cells) < header_width:
                result.errors.append(
                    f"Row {data_row}: Too few fields (expected {header_width}, parsed {len(cells)})."
                )
            elif len(cells) > header_width:
                result.errors.append(
                    f"Row {data_row}: Too many fields (expected {header_width}, parsed {len(cells)})."
                )

            result.rows.append(
                {label: cells[index] if index < len(cells) else None for index, label in columns}
            )
            result.row_count += 1

            if max_rows is not None and result.row_count >= max_rows:
                result.truncated = True
                result.errors.append(
                    f"Row limit reached: only the first {max_rows:,} rows were loaded."
                )
                break

    except UnicodeDecodeError as exc:
        logger.warning("CSV is not valid UTF-8: %s", exc)
        return ParsedCsv(errors=[f"File is not valid UTF-8 text ({exc.reason})."])
    except OSError as exc:
        logger.warning("Failed to read CSV source: %s", exc)
        return ParsedCsv(errors=[f"Failed to read file: {exc}"])
    finally:
        if stream is not None:
            try:
                stream.detach()
            except ValueError:
                pass
        if owned and raw is not None:
            raw.close()

    logger.debug(
        "Parsed CSV: %d rows, %d fields, %d errors, truncated=%s",
        result.row_count,
        len(result.fields),
        len(result.errors),
        result.truncated,
    )
    return result
