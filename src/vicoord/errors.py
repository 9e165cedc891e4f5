"""
Exception types for VICOORD.

Malformed external input and broken internal invariants are raised and end
the run. Per-sequence and per-feature problems (unjoinable flanks, feature
tiling mismatches) are not exceptions; they are returned as values, see
``vicoord.align.models.SpliceFailure`` and
``vicoord.features.models.CompositionMismatch``.
"""


class VicoordError(Exception):
    """Base class for all VICOORD errors."""


class MalformedCoordinatesError(VicoordError, ValueError):
    """A coordinate string does not follow the location grammar."""


class MalformedIndelTokenError(VicoordError, ValueError):
    """An indel description or CIGAR string cannot be parsed."""


class MalformedFeatureMapError(VicoordError, ValueError):
    """A feature table or peptide map file is inconsistent."""


class InvariantViolationError(VicoordError, RuntimeError):
    """An internal consistency check failed.

    This always indicates corrupted input that slipped past parsing or a bug,
    and is never repaired silently.
    """
