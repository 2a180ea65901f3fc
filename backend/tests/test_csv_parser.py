"""
Drone Routes Backend — CSV Parser Unit Tests
==============================================

What we test:
    ✅ Valid rows kept in order, invalid rows skipped
    ✅ Header count / name / order violations name the offending column
    ✅ Duplicate "Time" and "R Ir" columns map by position
    ✅ Empty cells, BOM, blank lines, undecodable bytes
"""

import pytest
from sqlalchemy import Text

from droneroutes.exceptions import CsvParseError
from droneroutes.models.route import FlightPoint
from droneroutes.services.csv_parser import (
    EXPECTED_COLUMNS,
    parse_csv,
    validate_header,
)


class TestParseRows:

    def test_row_without_latitude_is_skipped(self, csv_bytes, row):
        """3 data rows, one missing Latitude → 2 points in original order."""
        data = csv_bytes(rows=[
            row("IMG_0001.tif"),
            row("IMG_0002.tif", latitude=""),
            row("IMG_0003.tif"),
        ])

        points = parse_csv(data)

        assert [p.file_name for p in points] == ["IMG_0001.tif", "IMG_0003.tif"]

    def test_rows_missing_file_name_or_longitude_are_skipped(self, csv_bytes, row):
        data = csv_bytes(rows=[
            row(""),
            row("IMG_0002.tif", longitude="   "),
            row("IMG_0003.tif"),
        ])

        points = parse_csv(data)

        assert [p.file_name for p in points] == ["IMG_0003.tif"]

    def test_order_is_preserved(self, csv_bytes):
        names = [f"IMG_{i:04d}.tif" for i in range(50, 0, -1)]
        points = parse_csv(csv_bytes(names))
        assert [p.file_name for p in points] == names

    def test_duplicate_columns_map_by_position(self, csv_bytes, row):
        data = csv_bytes(rows=[row(
            "IMG_0001.tif",
            time="12:03:44.120",
            time_status="V",
            r_ir_1="0.101",
            r_ir_2="0.202",
        )])

        point = parse_csv(data)[0]

        assert point.time == "12:03:44.120"
        assert point.time_status == "V"
        assert point.r_ir_1 == "0.101"
        assert point.r_ir_2 == "0.202"
        assert point.altitude == "120.5"

    def test_values_are_trimmed_strings(self, csv_bytes, row):
        data = csv_bytes(rows=[row(" IMG_0001.tif ", latitude=" 55.750000 ", speed="08.40")])

        point = parse_csv(data)[0]

        assert point.file_name == "IMG_0001.tif"
        assert point.latitude == "55.750000"
        assert point.speed == "08.40"

    def test_empty_optional_cells_become_none(self, csv_bytes, row):
        data = csv_bytes(rows=[row("IMG_0001.tif", gain="", aex="", date="", time="")])

        point = parse_csv(data)[0]

        assert point.gain is None
        assert point.aex is None
        assert point.date == ""
        assert point.time == ""

    def test_short_row_is_padded(self, csv_bytes):
        data = csv_bytes(rows=[["IMG_0001.tif", "2024-06-01", "12:00", "A", "1", "55.1", "37.2"]])

        point = parse_csv(data)[0]

        assert point.longitude == "37.2"
        assert point.speed is None
        assert point.gain is None

    def test_blank_lines_are_ignored(self, row):
        header = ",".join(EXPECTED_COLUMNS)
        body = ",".join(row("IMG_0001.tif"))
        data = f"{header}\n\n{body}\n,,,\n".encode("utf-8")

        points = parse_csv(data)

        assert len(points) == 1

    def test_header_only_returns_empty_list(self, csv_bytes):
        assert parse_csv(csv_bytes()) == []

    def test_utf8_bom_is_accepted(self, csv_bytes):
        data = b"\xef\xbb\xbf" + csv_bytes(["IMG_0001.tif"])
        assert len(parse_csv(data)) == 1

    def test_quoted_cells_with_commas(self, row):
        header = ",".join(EXPECTED_COLUMNS)
        cells = row("IMG_0001.tif")
        cells[0] = '"IMG,0001.tif"'
        data = f"{header}\n{','.join(cells)}\n".encode("utf-8")

        assert parse_csv(data)[0].file_name == "IMG,0001.tif"


class TestParseFailures:

    def test_empty_buffer(self):
        with pytest.raises(CsvParseError, match="CSV file is empty"):
            parse_csv(b"")

    def test_invalid_utf8(self, csv_bytes):
        with pytest.raises(CsvParseError, match="not valid UTF-8"):
            parse_csv(csv_bytes(["IMG_0001.tif"]) + b"\xff\xfe\xfa")

    def test_wrong_column_count(self, csv_bytes):
        with pytest.raises(CsvParseError, match="Expected 21 columns, got 20"):
            parse_csv(csv_bytes(header=list(EXPECTED_COLUMNS[:-1])))

    def test_misnamed_column_is_reported(self, csv_bytes):
        header = list(EXPECTED_COLUMNS)
        header[5] = "Lat"

        with pytest.raises(CsvParseError) as exc_info:
            parse_csv(csv_bytes(header=header))

        assert exc_info.value.column == 6
        assert "Column 6 should be 'Latitude', got 'Lat'" in exc_info.value.message

    def test_swapped_columns_are_reported(self):
        header = list(EXPECTED_COLUMNS)
        header[5], header[6] = header[6], header[5]

        with pytest.raises(CsvParseError, match="Column 6 should be 'Latitude'"):
            validate_header(header)

    def test_header_cells_are_trimmed(self):
        validate_header([f" {name} " for name in EXPECTED_COLUMNS])

    def test_unterminated_quote(self, csv_bytes):
        data = csv_bytes(["IMG_0001.tif"]) + b'"IMG_0002.tif,2024'

        with pytest.raises(CsvParseError, match="Malformed CSV"):
            parse_csv(data)


class TestLongCells:

    def test_long_cells_parse_and_fit_their_columns(self, csv_bytes, row):
        latitude = "55." + "7" * 80
        data = csv_bytes(rows=[row("IMG_" + "9" * 300 + ".tif", latitude=latitude, shutter="x" * 100)])

        point = parse_csv(data)[0]

        assert point.latitude == latitude
        columns = FlightPoint.__table__.c
        for name in ("file_name", "latitude", "shutter", "photo_object_key"):
            assert isinstance(columns[name].type, Text)
            assert columns[name].type.length is None
