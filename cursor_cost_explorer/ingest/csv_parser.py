"""
Cursor usage export parsing.

Turns the CSV downloaded from the Cursor dashboard into UsageEvent
objects. Bad rows are dropped and reported rather than failing the
whole file.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from cursor_cost_explorer.core.errors import ValidationError
from .models import UsageEvent

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0"

REQUIRED_COLUMNS = ("Date", "Kind", "Model", "Cost", "Total Tokens", "Cache Read")

COLUMN_ALIASES = {
    "Input": ("Input", "Input (w/o Cache Write)"),
    "Output": ("Output", "Output Tokens"),
}

_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one export."""
    events: List[UsageEvent]
    errors: List[str] = field(default_factory=list)
    format_version: str = FORMAT_VERSION
    total_rows: int = 0

    @property
    def valid_rows(self) -> int:
        return len(self.events)


def parse_number(value: Optional[str]) -> float:
    """Parse a numeric cell, ignoring currency symbols and separators.

    Anything that still isn't a number after cleaning counts as zero.
    """
    if value is None:
        return 0.0
    cleaned = _NON_NUMERIC.sub("", value.strip().strip('"'))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; a trailing ``Z`` means UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


def _find_column(headers: Sequence[str], name: str) -> int:
    normalized = name.lower().strip()
    for index, header in enumerate(headers):
        if header.lower().strip() == normalized:
            return index
    return -1


def _column_map(headers: Sequence[str]) -> Dict[str, int]:
    """Map required and aliased column names to header positions.

    Raises:
        ValidationError: If any required column is missing
    """
    columns = {}
    missing = []
    for name in REQUIRED_COLUMNS:
        index = _find_column(headers, name)
        if index == -1:
            missing.append(name)
        else:
            columns[name] = index

    if missing:
        plural = "s" if len(missing) > 1 else ""
        raise ValidationError(
            f"Column{plural} '{', '.join(missing)}' missing - is this a Cursor usage export?"
        )

    for name, aliases in COLUMN_ALIASES.items():
        for alias in aliases:
            index = _find_column(headers, alias)
            if index != -1:
                columns[name] = index
                break
    return columns


def _cell(row: Sequence[str], columns: Dict[str, int], name: str) -> str:
    index = columns.get(name, -1)
    if index < 0 or index >= len(row):
        return ""
    return row[index].strip()


def _row_to_event(row: Sequence[str], columns: Dict[str, int], row_number: int) -> UsageEvent:
    """Build an event from one data row.

    Raises:
        ValidationError: If the row is missing data or has a bad date
    """
    date = _cell(row, columns, "Date")
    model = _cell(row, columns, "Model")
    if not date or not model:
        raise ValidationError("Missing date or model, skipped")
    if not _DATE_PREFIX.match(date):
        raise ValidationError(f'Date format invalid - expected ISO 8601 (YYYY-MM-DD), got "{date}"')

    try:
        timestamp = parse_timestamp(date)
    except ValueError:
        raise ValidationError(f'Date format invalid - expected ISO 8601 (YYYY-MM-DD), got "{date}"')

    return UsageEvent(
        timestamp=timestamp,
        kind=_cell(row, columns, "Kind"),
        model=model,
        cost=parse_number(_cell(row, columns, "Cost")),
        total_tokens=int(parse_number(_cell(row, columns, "Total Tokens"))),
        cache_read_tokens=int(parse_number(_cell(row, columns, "Cache Read"))),
        input_tokens=int(parse_number(_cell(row, columns, "Input"))),
        output_tokens=int(parse_number(_cell(row, columns, "Output"))),
    )


def parse_csv_content(content: str) -> ParseResult:
    """Parse Cursor usage CSV text.

    Args:
        content: Full CSV text, header row first

    Returns:
        ParseResult with the valid events and one message per dropped row

    Raises:
        ValidationError: If the content is empty or required columns are missing
    """
    if not content or not content.strip():
        raise ValidationError("CSV file is empty")

    rows = [row for row in csv.reader(io.StringIO(content)) if any(cell.strip() for cell in row)]
    if not rows:
        raise ValidationError("CSV file is empty")

    headers = [h.strip() for h in rows[0]]
    columns = _column_map(headers)

    events = []
    errors = []
    for row_number, row in enumerate(rows[1:], start=2):
        try:
            events.append(_row_to_event(row, columns, row_number))
        except ValidationError as e:
            logger.debug("Dropping row %d: %s", row_number, e)
            errors.append(f"Row {row_number}: {e}")

    if errors:
        logger.warning("Skipped %d of %d rows", len(errors), len(rows) - 1)

    return ParseResult(
        events=events,
        errors=errors,
        format_version=FORMAT_VERSION,
        total_rows=len(rows) - 1,
    )


def parse_csv_file(path: str) -> ParseResult:
    """Read and parse a Cursor usage export.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the content is not a usable export
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    # utf-8-sig drops the BOM some spreadsheet tools add
    with open(csv_path, 'r', encoding='utf-8-sig', newline='') as f:
        content = f.read()

    logger.info("Parsing %s", path)
    return parse_csv_content(content)
