"""
Normalizer: Turn raw cell values into canonical comparable strings.
"""
from __future__ import annotations

import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any


def _is_absent(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    # pandas NaT compares unequal to itself and is a datetime subclass
    if isinstance(value, datetime) and value != value:
        return True
    return False


def _format_float(value: float) -> str:
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _format_decimal(value: Decimal) -> str:
    if value.is_finite() and value == value.to_integral_value():
        return format(value.to_integral_value(), "f")
    return str(value)


def _format_datetime(value: datetime) -> str:
    if value.time() == time(0, 0) and value.tzinfo is None:
        return value.date().isoformat()
    return value.isoformat()


def normalize(value: Any) -> str:
    """
    Normalize a cell value for key construction and comparison.

    Rules, in order:
      - absent (None, NaN, NaT) -> ""
      - bool -> "True"/"False"
      - int/Decimal/float -> natural string form; integral floats drop ".0"
      - datetime -> ISO form (date only at midnight); date/time -> ISO form
      - anything else -> str(value)
    The result is stripped of surrounding whitespace. No case folding.
    """
    if _is_absent(value):
        return ""
    if isinstance(value, bool):
        text = "True" if value else "False"
    elif isinstance(value, int):
        text = str(value)
    elif isinstance(value, float):
        text = _format_float(value)
    elif isinstance(value, Decimal):
        text = _format_decimal(value)
    elif isinstance(value, datetime):
        text = _format_datetime(value)
    elif isinstance(value, (date, time)):
        text = value.isoformat()
    else:
        text = str(value)
    return text.strip()
