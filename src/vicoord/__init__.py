"""
VICOORD: Viral Coordinate algebra and seed-and-splice alignment toolkit

Coordinate algebra over stranded, circular viral genomes, and the
seed-and-splice core of fast annotation: trusted ungapped seeds from an
approximate aligner are joined with accurately realigned flanks into one
full-length alignment per sequence.
"""

__version__ = "0.3.0"
__author__ = "Kathie A. Mihindukulasuriya, Scott A. Handley"

from vicoord.config import Config, get_config
from vicoord.logging import setup_logging, get_logger, sequence_logger
from vicoord.errors import (
    VicoordError,
    MalformedCoordinatesError,
    MalformedIndelTokenError,
    MalformedFeatureMapError,
    InvariantViolationError,
)
from vicoord.coords import CoordsSegment, Strand, parse_coords, format_coords
from vicoord.align import AlignmentTriple, join_alignments
from vicoord.pipeline import SeedSplicePipeline

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "sequence_logger",
    "VicoordError",
    "MalformedCoordinatesError",
    "MalformedIndelTokenError",
    "MalformedFeatureMapError",
    "InvariantViolationError",
    "CoordsSegment",
    "Strand",
    "parse_coords",
    "format_coords",
    "AlignmentTriple",
    "join_alignments",
    "SeedSplicePipeline",
    "__version__",
]
