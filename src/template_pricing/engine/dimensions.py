"""
Dimension Normalizer - converts raw order form inputs into OrderDimensions.

Inputs may arrive as strings or numbers in mm, cm, m or inches; output is
always centimetres with fullness defaulted to 1.
"""
import math
import re
from typing import Optional, Union

from .errors import ValidationError
from .models import OrderDimensions

RawNumber = Union[str, int, float, None]

UNIT_TO_CM = {
    'mm': 0.1,
    'cm': 1.0,
    'm': 100.0,
    'in': 2.54,
}

# Plain decimal only: no thousands separators, no exponent.
_NUMBER_RE = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')

_TRUE_VALUES = ('true', '1', 'yes', 'y', 'on', 'hand')
_FALSE_VALUES = ('false', '0', 'no', 'n', 'off', 'machine', '')


def parse_number(value: RawNumber, field: str) -> float:
    """Parse a single numeric input, rejecting blanks and non-finite values."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number, got {value!r}", field=field)

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not _NUMBER_RE.match(text):
            raise ValidationError(f"{field} must be a number, got {value!r}", field=field)
        number = float(text)
    else:
        raise ValidationError(f"{field} is required", field=field)

    if not math.isfinite(number):
        raise ValidationError(f"{field} must be finite, got {value!r}", field=field)
    return number


def parse_positive(value: RawNumber, field: str) -> float:
    number = parse_number(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than 0, got {number:g}", field=field)
    return number


def parse_flag(value: Union[str, bool, None], field: str) -> bool:
    if value is None or isinstance(value, bool):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValidationError(f"{field} must be true or false, got {value!r}", field=field)


def normalize_dimensions(
    width: RawNumber,
    height: RawNumber,
    fullness: RawNumber = None,
    hand_finished: Union[str, bool, None] = False,
    heading_id: Optional[str] = None,
    quantity: RawNumber = 1,
    unit: str = 'cm',
) -> OrderDimensions:
    """
    Build canonical OrderDimensions from raw order form values.

    Raises ValidationError for non-numeric or non-positive lengths, a
    fullness below 1, a non-integer or zero quantity, or an unknown unit.
    """
    unit_key = (unit or 'cm').strip().lower()
    if unit_key not in UNIT_TO_CM:
        raise ValidationError(f"Unknown unit {unit!r}; expected one of {sorted(UNIT_TO_CM)}", field='unit')
    factor = UNIT_TO_CM[unit_key]

    finished_width = parse_positive(width, 'width') * factor
    finished_height = parse_positive(height, 'height') * factor

    if fullness is None or (isinstance(fullness, str) and not fullness.strip()):
        fullness_ratio = 1.0
    else:
        fullness_ratio = parse_number(fullness, 'fullness')
        if fullness_ratio < 1:
            raise ValidationError(f"fullness must be at least 1, got {fullness_ratio:g}", field='fullness')

    qty = parse_positive(quantity if quantity not in (None, '') else 1, 'quantity')
    if qty != int(qty):
        raise ValidationError(f"quantity must be a whole number, got {qty:g}", field='quantity')

    heading = heading_id.strip() if isinstance(heading_id, str) else heading_id

    return OrderDimensions(
        finished_width=finished_width,
        finished_height=finished_height,
        fullness_ratio=fullness_ratio,
        hand_finished=parse_flag(hand_finished, 'hand_finished'),
        heading_id=heading or None,
        quantity=int(qty),
    )


def validate_dimensions(dims: OrderDimensions) -> OrderDimensions:
    """Re-check an OrderDimensions built outside the normalizer."""
    for name in ('finished_width', 'finished_height'):
        value = getattr(dims, name)
        if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value) or value <= 0:
            raise ValidationError(f"{name} must be a positive number, got {value!r}", field=name)
    fullness = dims.fullness_ratio
    if not isinstance(fullness, (int, float)) or isinstance(fullness, bool) or not math.isfinite(fullness):
        raise ValidationError(f"fullness_ratio must be a number, got {fullness!r}", field='fullness_ratio')
    if fullness < 1:
        raise ValidationError(f"fullness_ratio must be at least 1, got {fullness:g}", field='fullness_ratio')
    if not isinstance(dims.hand_finished, bool):
        raise ValidationError(f"hand_finished must be true or false, got {dims.hand_finished!r}", field='hand_finished')
    if isinstance(dims.quantity, bool) or not isinstance(dims.quantity, int) or dims.quantity < 1:
        raise ValidationError(f"quantity must be a whole number of at least 1, got {dims.quantity!r}", field='quantity')
    return dims
