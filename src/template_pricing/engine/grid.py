"""
Pricing Grid - parse, serialize and look up width x drop price matrices.

CSV format (must match the sample offered for download):

    Drop/Width,<width-label-1>,<width-label-2>,...
    <drop-label>,<price>,<price>,...

Every data row has the header's column count and every price cell is
numeric; one bad row rejects the whole file. Numeric bounds are derived
from the labels once, at parse time, and stored next to them. Lookups use
the bounds and never re-read the label text.

Accepted labels:
    "100-150cm" / "100-150"   inclusive range
    "300cm+" / "300+"         open-ended final bucket
    "150cm" / "150"           up to 150, starting where the previous bucket ended
"""
import csv
import io
import logging
import math
import re
import threading
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .errors import ConfigurationError, ParseError, RangeLookupError
from .models import GridAxisRange, PricingGrid
from .range_resolver import OrderedRange, resolve_index

logger = logging.getLogger(__name__)

SAMPLE_GRID_CSV = """Drop/Width,100,150,200,250,300
150,120,140,160,180,200
200,150,175,200,225,250
250,180,210,240,270,300
300,210,245,280,315,350"""

_NUM = r'(\d+(?:\.\d+)?)'
_RANGE_LABEL = re.compile(rf'^{_NUM}\s*(?:cm)?\s*[-–]\s*{_NUM}\s*(?:cm)?$', re.IGNORECASE)
_OPEN_LABEL = re.compile(rf'^{_NUM}\s*(?:cm)?\s*\+$', re.IGNORECASE)
_UPPER_LABEL = re.compile(rf'^{_NUM}\s*(?:cm)?$', re.IGNORECASE)
_PRICE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')


class ParseCancelled(Exception):
    """Raised when a caller cancels a parse in progress. Nothing is kept."""


@dataclass(frozen=True)
class GridCell:
    price: float
    width_index: int
    drop_index: int
    clamped: bool = False


def parse_range_label(label: str, previous_max: Optional[float] = None) -> tuple[float, float]:
    """
    Derive (min, max) bounds from a range label.

    Raises ValueError when the label matches no accepted pattern or its
    bounds are inverted.
    """
    text = label.strip()

    m = _RANGE_LABEL.match(text)
    if m:
        low, high = float(m.group(1)), float(m.group(2))
        if low > high:
            raise ValueError(f"range label {label!r} has min above max")
        return low, high

    m = _OPEN_LABEL.match(text)
    if m:
        return float(m.group(1)), math.inf

    m = _UPPER_LABEL.match(text)
    if m:
        high = float(m.group(1))
        low = previous_max if previous_max is not None else 0.0
        if low > high:
            raise ValueError(f"range label {label!r} is below the previous bucket ({low:g})")
        return low, high

    raise ValueError(f"range label {label!r} is not a recognised range")


def build_axis(labels: Iterable[str], axis: str, row: Optional[int] = None) -> tuple[GridAxisRange, ...]:
    """Turn axis labels into ranges. Errors carry `row` when given."""
    ranges = []
    previous_max = None
    for label in labels:
        try:
            low, high = parse_range_label(label, previous_max)
        except ValueError as e:
            raise ParseError(f"{axis} {e}", row=row) from None
        if ranges and ranges[-1].open_ended:
            raise ParseError(f"{axis} range {label!r} follows the open-ended range {ranges[-1].label!r}", row=row)
        ranges.append(GridAxisRange(label=label, min=low, max=high))
        previous_max = high
    return tuple(ranges)


def _parse_price(cell: str, row: int, column: int) -> float:
    text = cell.strip()
    if not _PRICE.match(text):
        raise ParseError(f"column {column} value {cell!r} is not a number", row=row)
    return float(text)


def parse_grid_csv(
    source: Union[str, Iterable[str]],
    cancel_event: Optional[threading.Event] = None,
) -> PricingGrid:
    """
    Parse a pricing grid CSV.

    `source` is the CSV text or any iterable of lines (e.g. an open file),
    so large uploads stream row by row. Setting `cancel_event` aborts the
    parse with ParseCancelled.
    """
    if isinstance(source, str):
        source = io.StringIO(source.lstrip('\ufeff'))

    reader = csv.reader(source)
    header = None
    width_ranges: tuple[GridAxisRange, ...] = ()
    drop_labels: list[str] = []
    cells: list[tuple[float, ...]] = []

    try:
        for row_number, record in enumerate(reader, start=1):
            if cancel_event is not None and cancel_event.is_set():
                raise ParseCancelled(f"Grid parse cancelled at row {row_number}")
            if not any(c.strip() for c in record):
                continue

            if header is None:
                header = [c.strip() for c in record]
                if header[0].startswith('\ufeff'):
                    header[0] = header[0][1:]
                if len(header) < 2:
                    raise ParseError("header needs at least one width column", row=row_number)
                width_ranges = build_axis(header[1:], 'width', row=row_number)
                continue

            if len(record) != len(header):
                raise ParseError(
                    f"expected {len(header)} columns, found {len(record)}", row=row_number
                )
            drop_labels.append(record[0].strip())
            cells.append(tuple(
                _parse_price(c, row_number, col) for col, c in enumerate(record[1:], start=2)
            ))
            # Drop labels are validated per row so the error names the row
            try:
                build_axis(drop_labels[-2:], 'drop')
            except ParseError as e:
                raise ParseError(str(e), row=row_number) from None
    except csv.Error as e:
        raise ParseError(f"malformed CSV: {e}", row=reader.line_num) from None

    if header is None:
        raise ParseError("grid CSV is empty")
    if not cells:
        raise ParseError("grid CSV needs at least one data row below the header")

    grid = PricingGrid(
        width_ranges=width_ranges,
        drop_ranges=build_axis(drop_labels, 'drop'),
        cells=tuple(cells),
        corner_label=header[0],
    )
    logger.info("Parsed pricing grid: %d drop rows x %d width columns", *grid.shape)
    return grid


def _format_price(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def grid_to_csv(grid: PricingGrid) -> str:
    """Serialize a grid back to the upload format (no trailing newline)."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator='\n')
    writer.writerow([grid.corner_label] + [r.label for r in grid.width_ranges])
    for drop, row in zip(grid.drop_ranges, grid.cells):
        writer.writerow([drop.label] + [_format_price(p) for p in row])
    return buffer.getvalue().rstrip('\n')


def grid_to_dict(grid: PricingGrid) -> dict:
    """Persisted form: labels with their numeric bounds, plus the price matrix."""
    def axis(ranges):
        return [
            {"label": r.label, "min": r.min, "max": None if r.open_ended else r.max}
            for r in ranges
        ]
    return {
        "corner_label": grid.corner_label,
        "width_ranges": axis(grid.width_ranges),
        "drop_ranges": axis(grid.drop_ranges),
        "cells": [list(row) for row in grid.cells],
    }


def grid_from_dict(data: dict) -> PricingGrid:
    """
    Rebuild a grid from its persisted form.

    Ranges may be `{"label", "min", "max"}` objects or bare label strings.
    Bare labels get their bounds derived here, once.
    """
    def axis(items, name):
        if not isinstance(items, list) or not items:
            raise ConfigurationError(f"Pricing grid {name}_ranges must be a non-empty list")
        if all(isinstance(i, str) for i in items):
            try:
                return build_axis(items, name)
            except ParseError as e:
                raise ConfigurationError(str(e)) from None
        ranges = []
        for item in items:
            try:
                high = item.get("max")
                ranges.append(GridAxisRange(
                    label=str(item["label"]),
                    min=float(item["min"]),
                    max=math.inf if high is None else float(high),
                ))
            except (KeyError, TypeError, ValueError, AttributeError):
                raise ConfigurationError(f"Invalid {name} range {item!r}") from None
        return tuple(ranges)

    width_ranges = axis(data.get("width_ranges"), 'width')
    drop_ranges = axis(data.get("drop_ranges"), 'drop')
    try:
        cells = tuple(tuple(float(p) for p in row) for row in data.get("cells") or [])
    except (TypeError, ValueError):
        raise ConfigurationError("Pricing grid cells must all be numbers") from None

    return PricingGrid(
        width_ranges=width_ranges,
        drop_ranges=drop_ranges,
        cells=cells,
        corner_label=data.get("corner_label") or "Drop/Width",
    )


def _axis_index(ranges: tuple[GridAxisRange, ...], value: float, axis: str, clamp: bool) -> tuple[int, bool]:
    """Bucket index for `value`, and whether it had to be clamped."""
    ordered = [OrderedRange(r.min, r.max, i) for i, r in enumerate(ranges)]
    index = resolve_index(ordered, value)
    if index is not None:
        return index, False

    low = min(r.min for r in ranges)
    high = max(r.max for r in ranges)
    if low <= value <= high:
        # Gap between buckets (e.g. 100.5 between 0-100 and 101-150): round up
        above = [i for i, r in enumerate(ranges) if r.min > value]
        if above:
            return min(above, key=lambda i: ranges[i].min), False

    if not clamp:
        raise RangeLookupError(axis, value)
    if value < low:
        return min(range(len(ranges)), key=lambda i: ranges[i].min), True
    return max(range(len(ranges)), key=lambda i: ranges[i].max), True


def lookup_cell(grid: PricingGrid, width: float, height: float, clamp: bool = False) -> GridCell:
    """
    Find the cell for a finished width and height.

    Out-of-range dimensions raise RangeLookupError unless `clamp` is set, in
    which case the nearest edge bucket is used and the cell is marked clamped.
    """
    width_index, width_clamped = _axis_index(grid.width_ranges, width, 'width', clamp)
    drop_index, drop_clamped = _axis_index(grid.drop_ranges, height, 'drop', clamp)
    clamped = width_clamped or drop_clamped
    if clamped:
        logger.warning("Grid lookup clamped (width=%g, height=%g)", width, height)
    return GridCell(
        price=grid.cells[drop_index][width_index],
        width_index=width_index,
        drop_index=drop_index,
        clamped=clamped,
    )


def lookup(grid: PricingGrid, width: float, height: float) -> float:
    return lookup_cell(grid, width, height).price
