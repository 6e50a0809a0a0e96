"""SQL argument normalization.

Tool calls carry positional ``args`` as a JSON array. They are bound by the
backend driver using its own placeholder style: SQLite uses ``?``,
PostgreSQL and MySQL use ``%s``, Oracle uses ``:1``. No placeholder
rewriting happens here.
"""

from __future__ import annotations

from typing import Any


def coerce_args(args: Any) -> tuple[Any, ...]:
    """Normalize *args* to a tuple for positional binding.

    * ``None`` -> empty tuple.
    * ``tuple`` / ``list`` -> ``tuple``.
    * Any other scalar -> wrapped in a single-element tuple.
    """
    if args is None:
        return ()
    if isinstance(args, (tuple, list)):
        return tuple(args)
    return (args,)


def to_transport(value: Any) -> Any:
    """Convert a driver value into something JSON can carry.

    Byte values become text; everything else passes through unchanged.
    """
    if isinstance(value, memoryview):
        value = value.tobytes()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return value
