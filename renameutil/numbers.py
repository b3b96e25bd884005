"""Parsing and formatting of the numbers embedded in filenames."""

import re


INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1

DEFAULT_NUMBER_WIDTH = 2
MIN_FILTERED_NUMBER_WIDTH = 2
MAX_FILTERED_NUMBER_WIDTH = 9

# Final run of digits, followed only by non-digits up to the end of the name
_LAST_NUMBER_RE = re.compile(r".*?(\d+)\D*", re.ASCII | re.DOTALL)


def fits_int32(value: int) -> bool:
    return INT32_MIN <= value <= INT32_MAX


def parse_last_number(filename: str) -> int | None:
    """Return the last run of digits in ``filename`` as an int.

    Returns None when the name has no digits or the number does not fit a
    32-bit signed integer.

    >>> parse_last_number("version1.2.3.zip")
    3
    """
    match = _LAST_NUMBER_RE.fullmatch(filename)
    if match is None:
        return None
    value = int(match.group(1))
    if not fits_int32(value):
        return None
    return value


def format_number(number: int, width: int) -> str:
    """Zero-pad ``number`` to ``width`` digits. Negative numbers are not padded."""
    if number < 0:
        return str(number)
    return str(number).zfill(max(width, 1))


def compute_number_width(lowest: int, highest: int, increment: int) -> int:
    """Padding width for <num>/<orig_num> in directory scan mode.

    With a numeric filter (any non-zero bound) the width covers the largest
    magnitude the filter bounds can reach after applying the increment,
    clamped to [2, 9]. Without a filter the width is 2.
    """
    if lowest == 0 and highest == 0:
        return DEFAULT_NUMBER_WIDTH

    step = abs(increment)
    max_abs = max(abs(highest), abs(lowest), abs(highest + step), abs(lowest - step))

    width = len(str(max_abs)) if max_abs > 0 else 1
    return min(MAX_FILTERED_NUMBER_WIDTH, max(MIN_FILTERED_NUMBER_WIDTH, width))


def index_width(total_files: int) -> int:
    """Digits needed to print every 1-based index of a list of ``total_files`` items."""
    if total_files <= 0:
        return 1
    return max(1, len(str(total_files)))
