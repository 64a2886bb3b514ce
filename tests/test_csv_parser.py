"""
Tests for parsing Cursor usage exports.
"""
import os
import shutil
import tempfile
from datetime import datetime, timezone

import pytest

from cursor_cost_explorer.core.errors import ValidationError
from cursor_cost_explorer.ingest.csv_parser import (
    parse_csv_content,
    parse_csv_file,
    parse_number,
    parse_timestamp,
)

HEADER = '"Date","Kind","Model","Max Mode","Input (w/o Cache Write)","Cache Read","Output","Total Tokens","Cost"'

VALID_ROWS = [
    '"2025-11-03T10:15:00.000Z","Included","composer-1","No","3000","6000","1000","10000","0.42"',
    '"2025-11-03T21:00:00.000Z","On-Demand","claude-4.5-sonnet","No","1,200","800","500","2,500","$1.10"',
]


class TestCsvParser:
    """Test CSV parsing and row validation."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        """Clean up test environment."""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write_csv(self, content: str, filename: str = "usage.csv") -> str:
        """Write CSV content to a temporary file."""
        path = os.path.join(self.temp_dir, filename)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        return path

    def build_csv(self, rows, header=HEADER):
        return "\n".join([header] + list(rows)) + "\n"

    def test_parses_valid_rows(self):
        result = parse_csv_content(self.build_csv(VALID_ROWS))

        assert result.valid_rows == 2
        assert result.total_rows == 2
        assert result.errors == []
        assert result.format_version == "1.0"

        first = result.events[0]
        assert first.timestamp == datetime(2025, 11, 3, 10, 15, tzinfo=timezone.utc)
        assert first.kind == "Included"
        assert first.model == "composer-1"
        assert first.cost == pytest.approx(0.42)
        assert first.total_tokens == 10000
        assert first.cache_read_tokens == 6000
        assert first.input_tokens == 3000
        assert first.output_tokens == 1000

    def test_lenient_numbers(self):
        """Test thousands separators and currency symbols are stripped."""
        event = parse_csv_content(self.build_csv(VALID_ROWS)).events[1]
        assert event.input_tokens == 1200
        assert event.total_tokens == 2500
        assert event.cost == pytest.approx(1.10)

    def test_header_matching_is_case_insensitive(self):
        header = "date,kind,model,cost,total tokens,cache read,input,output tokens"
        row = "2025-11-03,Included,composer-1,0.5,100,10,50,40"
        event = parse_csv_content(self.build_csv([row], header=header)).events[0]
        assert event.input_tokens == 50
        assert event.output_tokens == 40

    def test_optional_columns_default_to_zero(self):
        header = "Date,Kind,Model,Cost,Total Tokens,Cache Read"
        event = parse_csv_content(self.build_csv(["2025-11-03,Included,composer-1,0.5,100,10"], header)).events[0]
        assert event.input_tokens == 0
        assert event.output_tokens == 0

    def test_missing_columns(self):
        """Test missing required columns are named."""
        with pytest.raises(ValidationError) as excinfo:
            parse_csv_content("Date,Kind,Model,Cost\n2025-11-03,Included,x,1\n")
        assert str(excinfo.value) == "Columns 'Total Tokens, Cache Read' missing - is this a Cursor usage export?"

    def test_single_missing_column(self):
        with pytest.raises(ValidationError, match="^Column 'Cost' missing"):
            parse_csv_content("Date,Kind,Model,Total Tokens,Cache Read\n")

    @pytest.mark.parametrize("content", ["", "   \n\n"])
    def test_empty_content(self, content):
        with pytest.raises(ValidationError, match="CSV file is empty"):
            parse_csv_content(content)

    def test_bad_rows_reported_and_skipped(self):
        rows = [
            VALID_ROWS[0],
            '"","Included","composer-1","No","1","1","1","3","0.1"',
            '"11/03/2025","Included","composer-1","No","1","1","1","3","0.1"',
            '"2025-11-03T10:00:00Z","Included","","No","1","1","1","3","0.1"',
        ]

        result = parse_csv_content(self.build_csv(rows))

        assert result.valid_rows == 1
        assert result.total_rows == 4
        assert result.errors == [
            "Row 3: Missing date or model, skipped",
            'Row 4: Date format invalid - expected ISO 8601 (YYYY-MM-DD), got "11/03/2025"',
            "Row 5: Missing date or model, skipped",
        ]

    def test_blank_lines_ignored(self):
        content = HEADER + "\n\n" + VALID_ROWS[0] + "\n\n"
        result = parse_csv_content(content)
        assert result.total_rows == 1
        assert result.valid_rows == 1

    def test_parse_file(self):
        path = self._write_csv(self.build_csv(VALID_ROWS))
        assert parse_csv_file(path).valid_rows == 2

    def test_parse_file_with_bom(self):
        path = self._write_csv("\ufeff" + self.build_csv(VALID_ROWS))
        assert parse_csv_file(path).valid_rows == 2

    def test_missing_file(self):
        with pytest.raises(FileNotFoundError):
            parse_csv_file(os.path.join(self.temp_dir, "nope.csv"))


class TestFieldParsing:
    """Test cell-level helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("12", 12.0),
        ('"3.5"', 3.5),
        ("$1,234.50", 1234.5),
        ("", 0.0),
        ("n/a", 0.0),
        (None, 0.0),
    ])
    def test_parse_number(self, value, expected):
        assert parse_number(value) == expected

    def test_parse_timestamp_zulu(self):
        assert parse_timestamp("2025-11-03T10:15:00Z") == datetime(2025, 11, 3, 10, 15, tzinfo=timezone.utc)

    def test_parse_timestamp_date_only(self):
        assert parse_timestamp("2025-11-03") == datetime(2025, 11, 3)
