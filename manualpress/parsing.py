"""Shared parsing helpers for settings values and page-indexed filenames."""

from __future__ import annotations

from datetime import datetime, timezone
import re


_PAGE_FILENAME_RE = re.compile(r"^page-(?P<num>\d{3,})\.(?P<suffix>[a-z0-9]+)$")


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive integer, rejecting booleans and fractional values.

    Raises:
        ValueError: If the value is not a positive integer.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a positive integer.")
        try:
            parsed = int(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a positive integer.") from exc
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive integer.")
    return parsed


def parse_positive_float(value: object, field_name: str) -> float:
    """Parse a strictly positive number from int, float, or numeric string input."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive number.")
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"`{field_name}` must be a positive number.") from exc
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive number.")
    return parsed


def page_filename(page_num: int, suffix: str) -> str:
    """Return the canonical zero-padded filename for a 1-based page number."""

    if page_num < 1:
        raise ValueError(f"Page numbers are 1-based, got {page_num}.")
    return f"page-{page_num:03d}.{suffix}"


def parse_page_filename(name: str, suffix: str) -> int | None:
    """Decode a canonical page filename back to its page number.

    Returns `None` for names that are not canonical page files with the
    requested suffix, including non-canonical padding such as `page-01.png`.
    """

    match = _PAGE_FILENAME_RE.match(name)
    if match is None or match.group("suffix") != suffix:
        return None
    page_num = int(match.group("num"))
    if page_num < 1 or page_filename(page_num, suffix) != name:
        return None
    return page_num


def utc_timestamp() -> str:
    """Return the current UTC time as an ISO-8601 string with a `Z` suffix."""

    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
