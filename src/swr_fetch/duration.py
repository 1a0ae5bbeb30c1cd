"""Duration parsing utilities."""

import re

# Duration type alias
Duration = str | int | float  # "500ms", "5s", "5m", "2h", "1d" or seconds

_DURATION_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)(ms|s|m|h|d)$")
_UNITS: dict[str, float] = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3_600,
    "d": 86_400,
}


def parse_duration(duration: Duration) -> float:
    """Parse duration string to seconds. Numbers are taken as seconds."""
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")

    if isinstance(duration, (int, float)):
        if duration < 0:
            raise ValueError(f"Invalid duration: {duration!r}")
        return float(duration)

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return float(value) * _UNITS[unit]
