"""Display formatting for the search page.

The page shows numbers the way a browser would print them: whole-degree
temperatures use half-up rounding (21.5 -> 22, -2.5 -> -2), coordinates are
fixed to four decimals with ties rounded away from zero, and raw readings
such as wind speed or wave height are printed without a trailing ``.0``.
These helpers are also registered as Jinja filters by ``app.py``.
"""

from __future__ import annotations

import math
from datetime import datetime
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float]

DEGREE = "\N{DEGREE SIGN}"
NOT_AVAILABLE = "N/A"
INVALID_TIME = "Invalid Date"


def format_number(value: Number) -> str:
    """Stringify a number without a trailing ``.0`` on integral floats."""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        if value.is_integer() and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    return str(value)


def round_half_up(value: Number) -> int:
    """Round to the nearest integer, breaking ties toward positive infinity."""
    exact = Decimal(value)
    mode = ROUND_HALF_UP if exact >= 0 else ROUND_HALF_DOWN
    return int(exact.quantize(Decimal(1), rounding=mode))


def format_temperature(value: Optional[Number]) -> str:
    """``21.6`` -> ``"22°C"``."""
    if value is None:
        return NOT_AVAILABLE
    return f"{round_half_up(value)}{DEGREE}C"


def format_coordinate(value: Number) -> str:
    """Four fixed decimals and a degree sign: ``51.50853`` -> ``"51.5085°"``."""
    exact = Decimal(value)
    magnitude = abs(exact).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)
    sign = "-" if exact < 0 else ""
    return f"{sign}{magnitude}{DEGREE}"


def format_wave_height(value: Optional[Number]) -> str:
    """Unrounded wave height in metres: ``1.23`` -> ``"1.23m"``."""
    if value is None:
        return NOT_AVAILABLE
    return f"{format_number(value)}m"


def format_elevation(value: Number) -> str:
    return f"{format_number(value)}m"


def format_wind(value: Optional[Number]) -> str:
    if value is None:
        return f"Wind: {NOT_AVAILABLE}"
    return f"Wind: {format_number(value)} km/h"


def format_time_of_day(timestamp: Optional[str]) -> str:
    """Render an ISO-8601 timestamp as a time of day, e.g. ``2:00:00 PM``.

    Timestamps without an offset (as Open-Meteo returns them) are read as
    local wall-clock time.  Timestamps carrying an offset are converted to
    the local zone first.  Unparseable input renders as ``Invalid Date``.
    """
    if not timestamp:
        return INVALID_TIME
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return INVALID_TIME
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    hour = parsed.hour % 12 or 12
    return f"{hour}{parsed.strftime(':%M:%S %p')}"


def format_timezone(value: Optional[str]) -> str:
    return value or "UTC"
