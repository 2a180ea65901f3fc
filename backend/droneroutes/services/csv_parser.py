"""
Drone Routes Backend — Telemetry CSV Parser
=============================================

What:  Turns an uploaded telemetry CSV into an ordered list of ParsedPoint.
Who:   Called by RouteService.create_route() before anything is persisted.

Input format (exact, 21 columns, positional):

    file name, Date, Time, Time, AEX, Latitude, Longitude, Speed, Course,
    Magn, Altit, SPP, SRR, M-Lux, R Ir, G Ir, R Ir, I Ir, IBright, Shutter, Gain

The header repeats "Time" (index 2 and 3) and "R Ir" (index 14 and 16), so
rows are read as plain lists and mapped by column index. A name-keyed
reader (csv.DictReader) would silently keep only one of each pair.

Failure policy:
    - Wrong header (count, name or order)  → CsvParseError, parse aborted
    - Undecodable bytes / malformed quoting → CsvParseError, parse aborted
    - Row missing file name/lat/long        → row skipped with a warning
    - Zero kept rows                        → empty list (caller decides)

All values are kept as trimmed strings; nothing is converted to numbers.
"""

import csv
import io
import logging
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence

from droneroutes.exceptions import CsvParseError

logger = logging.getLogger(__name__)

EXPECTED_COLUMNS = (
    "file name",
    "Date",
    "Time",
    "Time",
    "AEX",
    "Latitude",
    "Longitude",
    "Speed",
    "Course",
    "Magn",
    "Altit",
    "SPP",
    "SRR",
    "M-Lux",
    "R Ir",
    "G Ir",
    "R Ir",
    "I Ir",
    "IBright",
    "Shutter",
    "Gain",
)

# Column index → ParsedPoint attribute. Order matches EXPECTED_COLUMNS.
FIELD_BY_INDEX = (
    "file_name",
    "date",
    "time",
    "time_status",
    "aex",
    "latitude",
    "longitude",
    "speed",
    "course",
    "magn",
    "altitude",
    "spp",
    "srr",
    "m_lux",
    "r_ir_1",
    "g_ir",
    "r_ir_2",
    "i_ir",
    "i_bright",
    "shutter",
    "gain",
)

REQUIRED_FIELDS = ("file_name", "latitude", "longitude")


@dataclass
class ParsedPoint:
    """One kept CSV row. Optional channels are None when the cell is empty."""
    file_name: str
    date: str
    time: str
    latitude: str
    longitude: str
    time_status: Optional[str] = None
    aex: Optional[str] = None
    speed: Optional[str] = None
    course: Optional[str] = None
    magn: Optional[str] = None
    altitude: Optional[str] = None
    spp: Optional[str] = None
    srr: Optional[str] = None
    m_lux: Optional[str] = None
    r_ir_1: Optional[str] = None
    g_ir: Optional[str] = None
    r_ir_2: Optional[str] = None
    i_ir: Optional[str] = None
    i_bright: Optional[str] = None
    shutter: Optional[str] = None
    gain: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)


def validate_header(header: Sequence[str]) -> None:
    """
    Check the header row against EXPECTED_COLUMNS.

    Raises:
        CsvParseError naming the expected vs actual count, or the first
        offending column (1-based) and its expected name.
    """
    if len(header) != len(EXPECTED_COLUMNS):
        raise CsvParseError(
            message=f"Expected {len(EXPECTED_COLUMNS)} columns, got {len(header)}",
            context={"expected": len(EXPECTED_COLUMNS), "actual": len(header)},
        )

    for index, (actual, expected) in enumerate(zip(header, EXPECTED_COLUMNS)):
        actual = actual.strip()
        if actual != expected:
            raise CsvParseError(
                message=f"Column {index + 1} should be '{expected}', got '{actual}'",
                column=index + 1,
                context={"expected": expected, "actual": actual},
            )


def _decode(buffer: bytes) -> str:
    try:
        # utf-8-sig: spreadsheet exports often prepend a BOM to "file name"
        return buffer.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise CsvParseError(
            message=f"CSV is not valid UTF-8 text (byte offset {e.start})",
            context={"reason": e.reason},
        ) from e


def _row_to_point(row: List[str]) -> Optional[ParsedPoint]:
    width = len(FIELD_BY_INDEX)
    cells = [cell.strip() for cell in row[:width]]
    cells.extend([""] * (width - len(cells)))
    values = dict(zip(FIELD_BY_INDEX, cells))

    if any(not values[name] for name in REQUIRED_FIELDS):
        return None

    return ParsedPoint(**{
        name: (value if value or name in ("date", "time") else None)
        for name, value in values.items()
    })


def parse_csv(buffer: bytes) -> List[ParsedPoint]:
    """
    Parse a telemetry CSV buffer into points, preserving row order.

    Args:
        buffer: Raw bytes of the uploaded CSV file.

    Returns:
        Kept points in CSV row order. May be empty.

    Raises:
        CsvParseError: Empty input, header mismatch, or unreadable content.
    """
    reader = csv.reader(io.StringIO(_decode(buffer), newline=""), strict=True)

    try:
        header = next(reader, None)
        if header is None:
            raise CsvParseError(message="CSV file is empty")
        validate_header(header)

        points: List[ParsedPoint] = []
        skipped = 0
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            point = _row_to_point(row)
            if point is None:
                skipped += 1
                logger.warning(
                    "Skipping CSV line %d: file name, latitude and longitude are required",
                    reader.line_num,
                )
                continue
            points.append(point)
    except csv.Error as e:
        raise CsvParseError(
            message=f"Malformed CSV near line {reader.line_num}: {e}",
            context={"line": reader.line_num},
        ) from e

    logger.info("Parsed %d valid points from CSV (%d rows skipped)", len(points), skipped)
    return points
