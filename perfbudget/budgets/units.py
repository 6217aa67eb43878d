from __future__ import annotations

import math

from .models import Unit

__all__ = ["format_bytes", "format_duration", "format_value"]

_BYTE_SIZES = ("B", "KB", "MB", "GB", "TB")


def _trim(number: float) -> str:
    text = f"{number:.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_bytes(value: float) -> str:
    if value == 0:
        return "0 B"
    magnitude = abs(value)
    index = int(math.floor(math.log(magnitude, 1024))) if magnitude >= 1 else 0
    index = max(0, min(index, len(_BYTE_SIZES) - 1))
    return f"{_trim(value / (1024 ** index))} {_BYTE_SIZES[index]}"


def format_duration(value_ms: float) -> str:
    if value_ms < 1:
        return f"{_trim(value_ms * 1000)}us"
    if value_ms < 1000:
        return f"{value_ms:.0f}ms"
    return f"{value_ms / 1000:.2f}s"


def format_value(value: float, unit: Unit | str) -> str:
    """Render ``value`` for humans according to ``unit``.

    Every :class:`Unit` member has its own branch; adding a unit without a
    formatter fails loudly instead of falling back to ``str(value)``.
    """

    resolved = Unit.coerce(unit)
    if resolved is Unit.MS:
        return format_duration(value)
    if resolved is Unit.BYTES:
        return format_bytes(value)
    if resolved is Unit.SCORE:
        return f"{value:.3f}"
    if resolved is Unit.COUNT:
        return str(int(round(value)))
    if resolved is Unit.PERCENT:
        return f"{value:.1f}%"
    if resolved is Unit.FPS:
        return f"{int(round(value))} fps"
    raise ValueError(f"no formatter for unit {resolved!r}")
