"""Duration parsing for the scheduler check interval."""

import re

_ISO_PATTERN = re.compile(
    r"^P(?:(?P<d>\d+)D)?(?:T(?:(?P<h>\d+)H)?(?:(?P<m>\d+)M)?(?:(?P<s>\d+)S)?)?$"
)
_HUMAN_PART = re.compile(r"(\d+)([smhd])")

_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}

_UNIT_NAMES = (
    (86400, "day"),
    (3600, "hour"),
    (60, "minute"),
    (1, "second"),
)


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


def parse_duration(duration_str: str) -> int:
    """
    Parse a duration string to seconds.

    Accepts human-readable forms ("30m", "1h", "1h30m", "1d") and ISO-8601
    durations ("PT30M", "PT1H", "P1D").

    Raises:
        DurationParseError: If the string is empty, malformed or zero

    Examples:
        >>> parse_duration("1h")
        3600
        >>> parse_duration("PT1H30M")
        5400
    """
    text = re.sub(r"\s+", "", duration_str or "").lower()
    if not text:
        raise DurationParseError("Duration string cannot be empty")

    if text.startswith("p"):
        match = _ISO_PATTERN.match(text.upper())
        if not match or text in ("p", "pt"):
            raise DurationParseError(
                f"Invalid ISO-8601 duration: '{duration_str}'. "
                "Expected something like 'PT1H', 'PT30M' or 'P1D'"
            )
        total = sum(
            int(match.group(group)) * _UNIT_SECONDS[group.lower()]
            for group in ("d", "h", "m", "s")
            if match.group(group)
        )
    else:
        parts = _HUMAN_PART.findall(text)
        if not parts or "".join(num + unit for num, unit in parts) != text:
            raise DurationParseError(
                f"Invalid duration: '{duration_str}'. "
                "Use digits with units s, m, h or d, e.g. '1h' or '1h30m'"
            )
        total = sum(int(num) * _UNIT_SECONDS[unit] for num, unit in parts)

    if total == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
    return total


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int = 60,
    max_seconds: int = 86400,
    label: str = "Check interval",
) -> None:
    """
    Validate that a duration lies within [min_seconds, max_seconds].

    Raises:
        DurationParseError: If the duration is outside the range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{label} too short: {format_seconds(duration_seconds)}. "
            f"Minimum is {format_seconds(min_seconds)}."
        )
    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"{label} too long: {format_seconds(duration_seconds)}. "
            f"Maximum is {format_seconds(max_seconds)}."
        )


def format_seconds(seconds: int) -> str:
    """Render seconds in the largest whole unit, e.g. "2 hours"."""
    for size, name in _UNIT_NAMES:
        if seconds >= size:
            count = seconds // size
            return f"{count} {name}{'s' if count != 1 else ''}"
    return f"{seconds} seconds"
