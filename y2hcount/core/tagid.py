# This file is part of Y2HCount.
#
# Licensed under MIT License.

"""Synthetic read identifiers joining tag alignments back to pair counts.

The aligner sees the bait and prey tags of a pair as two unrelated reads,
so the pair and the side have to travel in the read name:

    <pair_id>:B    bait tag of the pair
    <pair_id>:P    prey tag of the pair

``pair_id`` packs ``bait + prey`` at 2 bits per base into a zero-padded
hexadecimal string. For a fixed flank length it is collision-free and can
be decoded back into the tag pair; the id of two ``flank``-base tags is
``flank`` hex digits long.
"""

import re

from .errors import AlignmentParseError

BAIT = 'B'
PREY = 'P'
SIDES = (BAIT, PREY)

_CODE = {'A': 0, 'C': 1, 'G': 2, 'T': 3}
_BASES = 'ACGT'
_TAG_READ_RE = re.compile(r'^([0-9a-f]+):([BP])$')


def pair_id(bait, prey):
    """Identifier of the tag pair (bait, prey)."""
    code = 0
    for base in bait + prey:
        code = (code << 2) | _CODE[base]
    width = (len(bait) + len(prey) + 1) // 2
    return format(code, f'0{width}x')


def decode_pair_id(pid, flank):
    """Inverse of :func:`pair_id` for tags of length `flank`.

    Returns:
        (bait, prey)
    """
    code = int(pid, 16)
    bases = []
    for _ in range(2 * flank):
        bases.append(_BASES[code & 3])
        code >>= 2
    seq = ''.join(reversed(bases))
    return seq[:flank], seq[flank:]


def tag_read_id(pid, side):
    """Read name of the `side` tag of pair `pid`."""
    if side not in SIDES:
        raise ValueError(f'side must be one of {SIDES}, got {side!r}')
    return f'{pid}:{side}'


def parse_tag_read_id(name):
    """Split a tag read name into (pair_id, side).

    Raises:
        AlignmentParseError: `name` was not produced by :func:`tag_read_id`.
    """
    m = _TAG_READ_RE.match(name or '')
    if m is None:
        raise AlignmentParseError(f'Not a synthetic tag read name: {name!r}')
    return m.group(1), m.group(2)
