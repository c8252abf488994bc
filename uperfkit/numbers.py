"""Human-readable number parsing and formatting for sizes, rates and times."""

from __future__ import annotations

import os
import re

_SHIFT_SUFFIXES = "BKMGTPEZ"
_SIZE_PREFIXES = " KMGTPEZ"
_TIME_PREFIXES = "num"
_INT_MAX = 2**31 - 1
_UINT32_MAX = 2**32 - 1
_TIME_MULTIPLIERS = {"s": 10**9, "m": 10**6, "u": 10**3, "n": 1}

_LEADING_DIGITS = re.compile(r"\d*")
_LEADING_FLOAT = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def _resolve(value: str) -> str:
    """Return the value, or the environment variable it names when it starts with '$'."""
    if value.startswith("$"):
        resolved = os.environ.get(value[1:])
        if resolved is None:
            raise ValueError(f"environment variable {value[1:]} is not set")
        return resolved
    return value


def _require_number(text: str) -> None:
    if not text or text[0] not in "0123456789.":
        raise ValueError(f"{text!r} is not a valid number")


def _split_float(text: str) -> tuple[float, str]:
    match = _LEADING_FLOAT.match(text)
    if match is None:
        return 0.0, text
    return float(match.group()), text[match.end():]


def _shift_for(suffix: str) -> int:
    if not suffix:
        return 0
    index = _SHIFT_SUFFIXES.find(suffix[0].upper())
    if index < 0:
        raise ValueError(f"invalid numeric suffix: {suffix}")
    return 10 * index


def _time_multiplier(suffix: str) -> int:
    if not suffix:
        return _TIME_MULTIPLIERS["s"]
    try:
        return _TIME_MULTIPLIERS[suffix[0].lower()]
    except KeyError:
        raise ValueError(f"{suffix} not valid time suffix") from None


def string_to_int(value: str) -> int:
    """Convert a size such as '64k', '1.5m' or '8192' to an integer.

    Suffixes B, K, M, G, T, P, E, Z scale by powers of 1024.
    Raises ValueError on malformed or too-large input.
    """
    text = _resolve(value)
    _require_number(text)
    digits = _LEADING_DIGITS.match(text).group()
    rest = text[len(digits):]
    if rest.startswith("."):
        number, rest = _split_float(text)
        scaled = number * 2.0 ** _shift_for(rest)
        if scaled > _UINT32_MAX:
            raise ValueError(f"{text} is too large")
        return int(scaled)
    num = int(digits)
    shift = _shift_for(rest)
    if shift > 32 or (num << shift) > _INT_MAX:
        raise ValueError(f"{text} is too large")
    return num << shift


def string_to_nsec(value: str) -> int:
    """Convert a duration such as '20s', '20', '20ms', '20us' or '20ns' to nanoseconds.

    A bare number is taken as seconds. Raises ValueError on malformed input.
    """
    text = _resolve(value)
    _require_number(text)
    digits = _LEADING_DIGITS.match(text).group()
    rest = text[len(digits):]
    if rest.startswith("."):
        number, rest = _split_float(text)
        return int(number * _time_multiplier(rest))
    return int(digits) * _time_multiplier(rest)


def decimal_to_string(value: float, is_bit: bool = False) -> str:
    """Render a byte count ('2.00KB') or a bit rate ('1.50Kb/s')."""
    if value == 0:
        return "0"
    divisor = 1000.0 if is_bit else 1024.0
    pos = 0
    while value > divisor and pos < len(_SIZE_PREFIXES) - 1:
        value /= divisor
        pos += 1
    prefix = "" if pos == 0 else _SIZE_PREFIXES[pos]
    unit = "b/s" if is_bit else "B"
    return f"{value:.2f}{prefix}{unit}"


def format_decimal(value: float, width: int, is_bit: bool = False) -> str:
    """Right-align a rendered size or rate in a field of ``width`` followed by a space."""
    width = max(width, 0)
    text = decimal_to_string(value, is_bit)
    if value != 0:
        text = text[: max(width - 1, 0)]
    return f"{text:>{width}} "


def format_time(value: float, width: int) -> str:
    """Right-align a nanosecond duration scaled to ns, us, ms or s, followed by a space."""
    width = max(min(width, 127), 0)
    index = 0
    while value >= 1000.0 and index < len(_TIME_PREFIXES):
        index += 1
        value /= 1000.0
    if index == len(_TIME_PREFIXES):
        text = f"{value:{max(width - 1, 0)}.2f}s"
    else:
        text = f"{value:{max(width - 2, 0)}.2f}{_TIME_PREFIXES[index]}s"
    text = text[:width]
    return f"{text:>{width}} "