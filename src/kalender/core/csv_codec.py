"""
CSV codec for event import/export

The exported shape is fixed for compatibility with existing files: a 7-name
header, then rows that carry date and time in one quoted column:

    Title,Description,Date,Time,Location,Category,Priority
    "<title>","<description>","<yyyy-MM-dd HH:mm>",<location>,<category>,<priority>

Import skips the header without looking at it and never aborts on a bad row.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List, Optional, Union

import aiofiles

from kalender.core.errors import CSVRowError, StorageError, ValidationError
from kalender.core.models import CalendarEvent, EventFields

logger = logging.getLogger(__name__)

CSV_HEADER = "Title,Description,Date,Time,Location,Category,Priority"
CSV_DATETIME_FORMAT = "%Y-%m-%d %H:%M"

# title, description, date-time, location, category, priority
MIN_ROW_FIELDS = 6

# Longest row a quoted field may stretch over before the row is given up
MAX_ROW_LINES = 100


@dataclass
class CSVImportResult:
    """Outcome of reading one CSV file"""
    events: List[EventFields] = field(default_factory=list)
    skipped: List[CSVRowError] = field(default_factory=list)
    lines_read: int = 0

    @property
    def imported_count(self) -> int:
        return len(self.events)


def escape_quotes(text: Optional[str]) -> str:
    if text is None:
        return ""
    return text.replace('"', '""')


def encode_row(event: EventFields) -> str:
    return '"{}","{}","{}",{},{},{}'.format(
        escape_quotes(event.title),
        escape_quotes(event.description),
        event.timestamp.strftime(CSV_DATETIME_FORMAT),
        event.location,
        event.category,
        event.priority,
    )


def encode(events: Iterable[EventFields]) -> List[str]:
    """Header plus one line per event, without line terminators"""
    return [CSV_HEADER] + [encode_row(event) for event in events]


def split_line(line: str) -> List[str]:
    """
    Split one CSV line into fields.

    A double quote toggles quoted mode, a doubled quote is a literal quote,
    and commas only separate fields outside quotes.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def decode_row(fields: List[str], line_number: int) -> EventFields:
    """Turn split fields into validated event fields or raise CSVRowError"""
    if len(fields) < MIN_ROW_FIELDS:
        raise CSVRowError(line_number, f"expected at least {MIN_ROW_FIELDS} fields, got {len(fields)}")

    title, description, when, location, category, priority = fields[:MIN_ROW_FIELDS]

    try:
        timestamp = datetime.strptime(when, CSV_DATETIME_FORMAT)
    except ValueError as e:
        raise CSVRowError(line_number, f"malformed date/time '{when}'", cause=e) from e

    try:
        priority_value = int(priority.strip())
    except ValueError as e:
        raise CSVRowError(line_number, f"priority '{priority}' is not an integer", cause=e) from e

    try:
        return EventFields.parse({
            "title": title,
            "description": description,
            "timestamp": timestamp,
            "location": location,
            "category": category,
            "priority": priority_value,
        })
    except ValidationError as e:
        raise CSVRowError(line_number, e.message, cause=e) from e


def has_open_quote(text: str) -> bool:
    """Whether ``text`` ends inside a quoted field"""
    # Doubled quotes come in pairs, so only the parity of the count matters
    return text.count('"') % 2 == 1


class RowReader:
    """
    Assembles physical lines into CSV rows and decodes them.

    A quoted field may contain line breaks, so a row continues onto the next
    physical line while a quote is still open. Lines may be given as ``str``
    or as raw ``bytes``; bytes that are not valid UTF-8 fail only the row
    they belong to. The first line is the header and is never looked at.
    """

    def __init__(self, source: str = "<csv>"):
        self.source = source
        self.result = CSVImportResult()
        self._pending: Optional[str] = None
        self._pending_start = 0
        self._pending_lines = 0

    def feed(self, line: Union[str, bytes], line_number: int) -> None:
        self.result.lines_read = line_number
        if line_number == 1:
            return

        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError as e:
                start = self._pending_start if self._pending is not None else line_number
                self._pending = None
                self._skip(CSVRowError(start, f"line {line_number} is not valid UTF-8", cause=e))
                return

        if not line.endswith("\n"):
            line += "\n"

        if self._pending is None:
            if not line.strip():
                return
            self._pending, self._pending_start, self._pending_lines = line, line_number, 1
        else:
            self._pending += line
            self._pending_lines += 1

        if not has_open_quote(self._pending):
            self._flush()
        elif self._pending_lines >= MAX_ROW_LINES:
            self._pending = None
            self._skip(CSVRowError(self._pending_start, f"quoted field not closed within {MAX_ROW_LINES} lines"))

    def finish(self) -> CSVImportResult:
        if self._pending is not None:
            self._pending = None
            self._skip(CSVRowError(self._pending_start, "quoted field not closed before end of file"))
        _log_summary(self.result, self.source)
        return self.result

    def _flush(self) -> None:
        text, line_number = self._pending, self._pending_start
        self._pending = None
        # Strip only the row terminator; line breaks inside quoted fields stay
        if text.endswith("\r\n"):
            text = text[:-2]
        elif text.endswith("\n"):
            text = text[:-1]

        try:
            self.result.events.append(decode_row(split_line(text), line_number))
        except CSVRowError as e:
            self._skip(e)

    def _skip(self, error: CSVRowError) -> None:
        logger.warning(f"Skipping line {error.line_number} of {self.source}: {error.reason}")
        self.result.skipped.append(error)


def decode_lines(lines: Iterable[Union[str, bytes]], source: str = "<csv>") -> CSVImportResult:
    """Decode an iterable of lines; the first line is the header"""
    reader = RowReader(source)
    for line_number, line in enumerate(lines, start=1):
        reader.feed(line, line_number)
    return reader.finish()


async def import_csv(path: str) -> CSVImportResult:
    """
    Stream a CSV file into event fields.

    Raises StorageError only if the file cannot be opened or read at all.
    Every bad row, including one that is not valid UTF-8, is logged as a
    warning and recorded in ``skipped``.
    """
    reader = RowReader(str(path))
    try:
        async with aiofiles.open(path, mode="rb") as handle:
            line_number = 0
            async for line in handle:
                line_number += 1
                reader.feed(line, line_number)
    except OSError as e:
        raise StorageError(f"Cannot read CSV file {path}: {e}", path=str(path), cause=e) from e

    return reader.finish()


async def export_csv(path: str, events: Iterable[CalendarEvent]) -> int:
    """Write events to ``path``, overwriting it. Returns the number of rows."""
    lines = encode(events)
    try:
        async with aiofiles.open(path, mode="w", encoding="utf-8", newline="\n") as handle:
            await handle.write("\n".join(lines) + "\n")
    except OSError as e:
        raise StorageError(f"Cannot write CSV file {path}: {e}", path=str(path), cause=e) from e

    logger.info(f"Exported {len(lines) - 1} events to {path}")
    return len(lines) - 1


def _log_summary(result: CSVImportResult, source: str) -> None:
    logger.info(
        f"Read {result.imported_count} events from {source}"
        + (f", skipped {len(result.skipped)} lines" if result.skipped else "")
    )
