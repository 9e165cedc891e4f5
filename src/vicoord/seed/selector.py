"""
Selection of the flank subsequences that still need accurate alignment.
"""

import logging
from typing import List, Optional

from ..coords import CoordsSegment
from ..errors import InvariantViolationError
from .models import FlankRequest, FlankSide

logger = logging.getLogger(__name__)


def select_flanks(
    seq_name: str,
    seq_len: int,
    seed_seq_span: CoordsSegment,
    overhang: int,
    seed_model_span: Optional[CoordsSegment] = None,
    model_len: Optional[int] = None,
) -> List[FlankRequest]:
    """Decide which flanks of a sequence must be realigned around its seed.

    For a seed covering sequence positions ``[s, e]`` of a sequence of
    length ``L`` with overhang ``W``:

    - ``s == 1`` and ``e == L``: nothing to realign
    - 5' flank ``[1, min(e, s+W-1)]`` when ``s > 1``
    - 3' flank ``[max(s, e-W+1), L]`` when ``e < L``
    - if both exist and the 5' stop reaches the 3' start, one request for
      the whole sequence replaces them

    When ``seed_model_span`` is given and the seed already reaches model
    position 1 (or the model end, with ``model_len``), that side's overhang
    grows by twice the number of sequence residues outside the seed.

    Args:
        seq_name: Name of the sequence, used to name subsequences
        seq_len: Length of the sequence
        seed_seq_span: Sequence span of the seed
        overhang: Overhang width W
        seed_model_span: Model span of the seed
        model_len: Model length

    Returns:
        Zero, one or two FlankRequests, 5' first

    Raises:
        InvariantViolationError: If the seed span lies outside the sequence
    """
    s, e = seed_seq_span.start, seed_seq_span.stop
    if not 1 <= s <= e <= seq_len:
        raise InvariantViolationError(
            f"Seed span {s}..{e} is not within sequence {seq_name} of length {seq_len}"
        )
    if s == 1 and e == seq_len:
        return []

    overhang_5p = overhang
    overhang_3p = overhang
    if seed_model_span is not None:
        if seed_model_span.start == 1:
            overhang_5p += 2 * (s - 1)
        if model_len is not None and seed_model_span.stop == model_len:
            overhang_3p += 2 * (seq_len - e)

    five_prime = None
    three_prime = None
    if s > 1:
        five_prime = FlankRequest(seq_name, FlankSide.FIVE_PRIME, 1, min(e, s + overhang_5p - 1))
    if e < seq_len:
        three_prime = FlankRequest(seq_name, FlankSide.THREE_PRIME, max(s, e - overhang_3p + 1), seq_len)

    if five_prime is not None and three_prime is not None and five_prime.stop >= three_prime.start:
        logger.debug(
            f"{seq_name}: flank windows {five_prime.name} and {three_prime.name} "
            f"touch, realigning whole sequence"
        )
        return [FlankRequest(seq_name, FlankSide.FULL, 1, seq_len)]

    return [req for req in (five_prime, three_prime) if req is not None]
