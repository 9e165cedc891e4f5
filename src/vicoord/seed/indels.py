"""
Parsing of indel descriptions produced by the approximate aligner summary.

Each alignment is summarized by an insertion string and a deletion string,
``";"``-separated tokens of the form ``Q<seq_pos>:S<model_pos><sign><len>``
where the sign is ``+`` for insertions and ``-`` for deletions, e.g.::

    Q41:S46+1;Q107:S111+2

``M`` is accepted as the model tag in place of ``S``. An empty string, or the
``BLASTNULL`` placeholder written when a hit has no indels, means no tokens.
"""

import re
from typing import List, Optional

from ..errors import MalformedIndelTokenError
from .models import IndelKind, IndelToken

_TOKEN_RE = re.compile(r"^Q(\d+):[SM](\d+)([+\-])(\d+)$")

NO_INDELS = "BLASTNULL"


def parse_indel_token(text: str, kind: IndelKind) -> IndelToken:
    """Parse a single indel token.

    Args:
        text: Token text, e.g. ``"Q41:S46+1"``
        kind: Kind the caller expects; the token's sign must agree

    Returns:
        Parsed IndelToken

    Raises:
        MalformedIndelTokenError: If the token does not follow the grammar,
            has a zero length, or its sign contradicts ``kind``
    """
    match = _TOKEN_RE.match(text.strip())
    if not match:
        raise MalformedIndelTokenError(f"Unable to parse indel token: {text!r}")

    seq_pos, model_pos, sign, indel_len = match.groups()
    if sign != kind.value:
        raise MalformedIndelTokenError(
            f"Indel token {text!r} has sign '{sign}' but a {kind.name.lower()} "
            f"token must use '{kind.value}'"
        )
    if int(indel_len) == 0:
        raise MalformedIndelTokenError(f"Indel token {text!r} has zero length")

    return IndelToken(
        seq_pos=int(seq_pos),
        model_pos=int(model_pos),
        length=int(indel_len),
        kind=kind,
    )


def parse_indel_string(text: Optional[str], kind: IndelKind) -> List[IndelToken]:
    """Parse a ``";"``-separated list of indel tokens of one kind.

    Args:
        text: Indel string; None, ``""`` or ``"BLASTNULL"`` mean no indels
        kind: INSERTION or DELETION

    Returns:
        Tokens in the order they appear
    """
    if text is None:
        return []
    text = text.strip()
    if text in ("", NO_INDELS):
        return []

    # Summaries sometimes end every token with ';'
    if text.endswith(";"):
        text = text[:-1]

    return [parse_indel_token(token, kind) for token in text.split(";")]


def parse_indel_strings(
    insertions: Optional[str], deletions: Optional[str]
) -> tuple[List[IndelToken], List[IndelToken]]:
    """Parse the insertion and deletion strings of one alignment.

    Returns:
        Tuple of (insertion tokens, deletion tokens)
    """
    return (
        parse_indel_string(insertions, IndelKind.INSERTION),
        parse_indel_string(deletions, IndelKind.DELETION),
    )
