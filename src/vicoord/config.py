"""
VICOORD Configuration Module

Centralized configuration for the seed-and-splice alignment pipeline.
Supports environment variables and sensible defaults.

Configuration Priority (highest to lowest):
1. Explicit constructor arguments / attribute assignment
2. Environment variables
3. Defaults

Environment Variables:
    VICOORD_OVERHANG      - Flank overhang width in nt (default: 100)
    VICOORD_MIN_SGM_LEN   - Minimum ungapped segment length kept in gapped seeds
    VICOORD_CIRCULAR      - Treat sequences as circular (1/true/yes/on)
    VICOORD_THREADS       - Number of worker processes
    VICOORD_SEED_MODE     - "ungapped" (longest segment only) or "gapped"
    VICOORD_CHECK_CODONS  - Collapse gapped seeds whose gaps overlap start/stop codons
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List

logger = logging.getLogger(__name__)

SEED_MODES = ("ungapped", "gapped")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# Singleton config instance
_config_instance: Optional["Config"] = None


def _parse_bool(value: str) -> Optional[bool]:
    value = value.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    return None


@dataclass
class Config:
    """
    VICOORD configuration container.

    Attributes:
        overhang_width: Number of seed nucleotides each flank request overlaps
        min_segment_length: Shortest ungapped segment kept when building gapped seeds
        circular: Whether genomes are circular (enables origin-spanning merges)
        worker_concurrency: Number of worker processes for batch runs
        seed_mode: "ungapped" keeps only the longest ungapped segment,
            "gapped" keeps pruned multi-segment seeds
        check_codon_gaps: In gapped mode, fall back to the longest segment
            when a seed gap overlaps a start or stop codon
    """

    # Seed and flank selection
    overhang_width: int = 100
    min_segment_length: int = 10
    seed_mode: str = "ungapped"
    check_codon_gaps: bool = True

    # Genome topology
    circular: bool = False

    # Resources
    worker_concurrency: int = 4

    # Internal state
    _initialized: bool = field(default=False, repr=False)

    def __post_init__(self):
        """Initialize configuration from environment."""
        if not self._initialized:
            self._load_from_environment()
            self._initialized = True

    def _load_from_environment(self) -> None:
        """Load configuration from environment variables."""

        if os.environ.get("VICOORD_OVERHANG"):
            try:
                self.overhang_width = int(os.environ["VICOORD_OVERHANG"])
            except ValueError:
                logger.debug("Ignoring non-integer VICOORD_OVERHANG")

        if os.environ.get("VICOORD_MIN_SGM_LEN"):
            try:
                self.min_segment_length = int(os.environ["VICOORD_MIN_SGM_LEN"])
            except ValueError:
                logger.debug("Ignoring non-integer VICOORD_MIN_SGM_LEN")

        if os.environ.get("VICOORD_THREADS"):
            try:
                self.worker_concurrency = int(os.environ["VICOORD_THREADS"])
            except ValueError:
                pass

        if os.environ.get("VICOORD_CIRCULAR"):
            circular = _parse_bool(os.environ["VICOORD_CIRCULAR"])
            if circular is not None:
                self.circular = circular

        if os.environ.get("VICOORD_SEED_MODE"):
            self.seed_mode = os.environ["VICOORD_SEED_MODE"].strip().lower()

        if os.environ.get("VICOORD_CHECK_CODONS"):
            check = _parse_bool(os.environ["VICOORD_CHECK_CODONS"])
            if check is not None:
                self.check_codon_gaps = check

    @property
    def terminal_segment_length(self) -> float:
        """Shortest terminal segment a gapped seed may keep (1.2 x overhang)."""
        return 1.2 * self.overhang_width

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid, list of error messages)
        """
        errors: List[str] = []

        if self.overhang_width < 1:
            errors.append(f"overhang_width must be positive, got {self.overhang_width}")
        if self.min_segment_length < 1:
            errors.append(f"min_segment_length must be positive, got {self.min_segment_length}")
        if self.worker_concurrency < 1:
            errors.append(f"worker_concurrency must be at least 1, got {self.worker_concurrency}")
        if self.seed_mode not in SEED_MODES:
            errors.append(
                f"seed_mode must be one of {', '.join(SEED_MODES)}, got {self.seed_mode!r}"
            )

        return len(errors) == 0, errors

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        return {
            "overhang_width": self.overhang_width,
            "min_segment_length": self.min_segment_length,
            "seed_mode": self.seed_mode,
            "check_codon_gaps": self.check_codon_gaps,
            "circular": self.circular,
            "worker_concurrency": self.worker_concurrency,
        }

    def print_status(self) -> None:
        """Print configuration status to stdout."""
        print("VICOORD Configuration Status")
        print("=" * 50)
        print(f"Overhang width:      {self.overhang_width}")
        print(f"Min segment length:  {self.min_segment_length}")
        print(f"Seed mode:           {self.seed_mode}")
        print(f"Check codon gaps:    {self.check_codon_gaps}")
        print(f"Circular genomes:    {self.circular}")
        print(f"Workers:             {self.worker_concurrency}")
        print("=" * 50)


def get_config() -> Config:
    """
    Get the global configuration instance.

    Returns:
        Config: The singleton configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config() -> None:
    """Reset the global configuration instance (useful for testing)."""
    global _config_instance
    _config_instance = None
