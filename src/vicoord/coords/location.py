"""
Parsing and formatting of coordinate text.

Two textual forms are understood:

- GenBank-style locations: ``"100..200"``, ``"57"``, ``"complement(100..200)"``,
  ``"join(1..50, 60..90)"``, ``"complement(join(1..50, 60..90))"``, with
  optional partial carets (``"<1..>300"``), which are dropped.
- Strand-tagged tokens as written to tabular pipeline files:
  ``"1..50:+,60..90:+"``. This is the only form that can carry an
  uncertain strand.
"""

import re
from typing import List

from ..errors import MalformedCoordinatesError
from .algebra import reverse_complement
from .models import CoordsSegment, CoordsString, Strand

_JOIN_RE = re.compile(r"^join\((.+)\)$")
_COMPLEMENT_RE = re.compile(r"^complement\((.+)\)$")
_TAGGED_RE = re.compile(r"^(\d+)\.\.(\d+):([+\-?])$")
_RANGE_RE = re.compile(r"^[<>]?(\d+)\.\.[<>]?(\d+)$")
_POINT_RE = re.compile(r"^[<>]?(\d+)$")

SEGMENT_SEPARATOR = ", "


def _split_top_level(text: str) -> List[str]:
    """Split on commas that are not nested inside parentheses."""
    parts = []
    depth = 0
    current = []
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise MalformedCoordinatesError(f"Unbalanced parentheses in: {text}")
        if char == "," and depth == 0:
            parts.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    if depth != 0:
        raise MalformedCoordinatesError(f"Unbalanced parentheses in: {text}")
    parts.append("".join(current).strip())
    return parts


def _parse_location(text: str) -> CoordsString:
    parts = _split_top_level(text)
    if len(parts) > 1:
        segments: CoordsString = []
        for part in parts:
            if not part:
                raise MalformedCoordinatesError(f"Empty segment in: {text}")
            segments.extend(_parse_location(part))
        return segments

    token = parts[0]
    match = _JOIN_RE.match(token)
    if match:
        return _parse_location(match.group(1).strip())

    match = _COMPLEMENT_RE.match(token)
    if match:
        return reverse_complement(_parse_location(match.group(1).strip()))

    match = _TAGGED_RE.match(token)
    if match:
        start, stop = int(match.group(1)), int(match.group(2))
        return [CoordsSegment(start, stop, Strand(match.group(3)))]

    match = _RANGE_RE.match(token)
    if match:
        start, stop = int(match.group(1)), int(match.group(2))
        if start > stop:
            raise MalformedCoordinatesError(
                f"Location range must be ascending, got {token} (use complement())"
            )
        return [CoordsSegment(start, stop, Strand.PLUS)]

    match = _POINT_RE.match(token)
    if match:
        pos = int(match.group(1))
        return [CoordsSegment(pos, pos, Strand.PLUS)]

    raise MalformedCoordinatesError(f"Unable to parse location token: {token!r}")


def parse_coords(text: str) -> CoordsString:
    """Parse a possibly multi-segment coordinate string.

    Args:
        text: Location or strand-tagged coordinate text

    Returns:
        Segments in 5'->3' biological order

    Raises:
        MalformedCoordinatesError: If the text does not follow either grammar
    """
    if text is None or not text.strip():
        raise MalformedCoordinatesError("Empty coordinate string")
    return _parse_location(text.strip())


def parse_segment(text: str) -> CoordsSegment:
    """Parse text describing exactly one segment.

    ``join(...)`` is accepted as long as it wraps a single segment.

    Raises:
        MalformedCoordinatesError: If the text is malformed or has more than
            one segment
    """
    segments = parse_coords(text)
    if len(segments) != 1:
        raise MalformedCoordinatesError(
            f"Expected a single segment, found {len(segments)} in: {text}"
        )
    return segments[0]


def _plain(low: int, high: int) -> str:
    return str(low) if low == high else f"{low}..{high}"


def format_segment(segment: CoordsSegment) -> str:
    """Format one segment as location text (inverse of ``parse_segment``)."""
    if segment.strand == Strand.PLUS:
        return _plain(segment.start, segment.stop)
    if segment.strand == Strand.MINUS:
        return f"complement({_plain(segment.stop, segment.start)})"
    return f"{segment.start}..{segment.stop}:{segment.strand.value}"


def format_coords(segments: CoordsString) -> str:
    """Format segments as location text (inverse of ``parse_coords``).

    An all-minus string is written as ``complement(join(...))`` with the
    segments in ascending order, everything else as ``join(...)``.
    """
    if not segments:
        return ""
    if len(segments) == 1:
        return format_segment(segments[0])
    if all(seg.strand == Strand.MINUS for seg in segments):
        inner = SEGMENT_SEPARATOR.join(
            _plain(seg.stop, seg.start) for seg in reversed(segments)
        )
        return f"complement(join({inner}))"
    return "join(" + SEGMENT_SEPARATOR.join(format_segment(seg) for seg in segments) + ")"


def format_tagged(segments: CoordsString) -> str:
    """Format segments in the strand-tagged form, e.g. ``"1..50:+,60..90:+"``."""
    return ",".join(str(seg) for seg in segments)
