"""Validation and clean-up of polygon ring coordinates from the upstream feed."""

from __future__ import annotations

import re
from math import isfinite
from typing import Any, List, Optional, Sequence, Tuple

Position = Tuple[float, float]
Ring = List[Position]

_MIN_RING_POINTS = 3
_MIN_CLOSED_RING_POINTS = 4

# Plain decimal notation only: no digit separators, no inf/nan spellings.
_DECIMAL = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_RADIX_LITERAL = re.compile(r"0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+")


def sanitize_rings(raw: Any) -> Optional[List[Ring]]:
    """Coerce loosely typed ring data into closed numeric rings.

    Entries that are not coordinate pairs are dropped, numeric strings are
    converted, open rings are closed by repeating their first position, and
    rings left with too few positions are discarded. Returns ``None`` when no
    ring survives.
    """

    if not isinstance(raw, (list, tuple)):
        return None

    rings: List[Ring] = []
    for candidate in raw:
        if not isinstance(candidate, (list, tuple)):
            continue

        ring: Ring = []
        for entry in candidate:
            position = _coerce_position(entry)
            if position is not None:
                ring.append(position)

        if len(ring) < _MIN_RING_POINTS:
            continue
        if ring[0] != ring[-1]:
            ring.append(ring[0])
        if len(ring) >= _MIN_CLOSED_RING_POINTS:
            rings.append(ring)

    return rings or None


def validate_rings(raw: Any) -> Optional[List[Ring]]:
    """Strictly check that ``raw`` is already a well-formed polygon.

    Unlike :func:`sanitize_rings` nothing is repaired: every ring must hold at
    least four real-number positions and end where it starts. Returns the
    rings as float tuples, or ``None`` if any ring fails.
    """

    if not isinstance(raw, (list, tuple)) or not raw:
        return None

    rings: List[Ring] = []
    for candidate in raw:
        if not isinstance(candidate, (list, tuple)) or len(candidate) < _MIN_CLOSED_RING_POINTS:
            return None

        ring: Ring = []
        for entry in candidate:
            if not isinstance(entry, (list, tuple)) or len(entry) < 2:
                return None
            if not (_is_real(entry[0]) and _is_real(entry[1])):
                return None
            ring.append((float(entry[0]), float(entry[1])))

        if ring[0] != ring[-1]:
            return None
        rings.append(ring)

    return rings


def _coerce_position(entry: Any) -> Optional[Position]:
    if not isinstance(entry, (list, tuple)) or len(entry) < 2:
        return None
    lng = _coerce_number(entry[0])
    lat = _coerce_number(entry[1])
    if lng is None or lat is None:
        return None
    return (lng, lat)


def _coerce_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        return _parse_numeric_text(value)
    if not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if isfinite(number) else None


def _parse_numeric_text(text: str) -> Optional[float]:
    """Read a decimal or 0x/0o/0b literal, surrounding whitespace allowed."""

    text = text.strip()
    try:
        if _DECIMAL.fullmatch(text):
            number = float(text)
        elif _RADIX_LITERAL.fullmatch(text):
            number = float(int(text, 0))
        else:
            return None
    except OverflowError:
        return None
    return number if isfinite(number) else None


def _is_real(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return isfinite(value)
    except OverflowError:
        return False


def ring_edges(ring: Sequence[Position]) -> List[Tuple[Position, Position]]:
    """Return consecutive vertex pairs of a closed ring."""

    return [(ring[index], ring[index + 1]) for index in range(len(ring) - 1)]
