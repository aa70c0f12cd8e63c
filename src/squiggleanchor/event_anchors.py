from __future__ import annotations

import logging
from typing import Optional, Sequence

from .models import EventAnchor, ReadAnchorSet, Strand
from .squiggle import SquiggleRead
from .utils import clamp, reverse_complement

logger = logging.getLogger(__name__)


def extract_alt_sequence(
    read: SquiggleRead,
    start_kidx: int,
    end_kidx: int,
    is_reverse: bool,
) -> str:
    """Read sequence spanning two anchored k-mers, in reference orientation.

    ``start_kidx`` and ``end_kidx`` are base coordinates as reported by the
    alignment (i.e. in the orientation of the aligned sequence). For reverse
    alignments they are flipped onto the basecalled read, which reverses their
    order, and the extracted sequence is reverse complemented back.
    """
    if is_reverse:
        start_kidx, end_kidx = read.flip_k_strand(end_kidx), read.flip_k_strand(start_kidx)

    max_kidx = len(read.read_sequence) - read.k
    start_kidx = clamp(start_kidx, 0, max_kidx)
    end_kidx = clamp(end_kidx, 0, max_kidx)

    s = read.read_sequence[start_kidx : end_kidx + read.k] if end_kidx >= start_kidx else ""
    if is_reverse:
        s = reverse_complement(s)
    return s


def map_read_to_event_anchors(
    read: SquiggleRead,
    read_kidx: Sequence[Optional[int]],
    is_reverse: bool,
) -> ReadAnchorSet:
    """Convert base-coordinate anchors of one read into event anchors.

    Parameters
    ----------
    read:
        The loaded signal read.
    read_kidx:
        Output of :func:`squiggleanchor.cigar.map_reference_to_read`; None marks
        positions where the read is not aligned.
    is_reverse:
        True if the alignment record is reverse complemented.

    Returns
    -------
    ReadAnchorSet
        Unset anchors where ``read_kidx`` is None; one alternative sequence per
        interval whose two ends are both aligned.

    Raises
    ------
    EventLookupError
        If no event can be found for an aligned base coordinate.
    """
    num_anchors = len(read_kidx)
    out = ReadAnchorSet.empty(read.read_name, num_anchors)

    # template events follow the aligned orientation; complement is opposite
    template_rc = is_reverse
    complement_rc = not is_reverse

    template = out.strand_anchors[Strand.TEMPLATE]
    complement = out.strand_anchors[Strand.COMPLEMENT]

    for ai, kidx in enumerate(read_kidx):
        if kidx is None:
            continue

        lookup_kidx = read.flip_k_strand(kidx) if is_reverse else kidx
        template[ai] = EventAnchor(read.get_closest_event_to(lookup_kidx, Strand.TEMPLATE), template_rc)
        complement[ai] = EventAnchor(read.get_closest_event_to(lookup_kidx, Strand.COMPLEMENT), complement_rc)

        if ai < num_anchors - 1 and read_kidx[ai + 1] is not None:
            alt = extract_alt_sequence(read, kidx, read_kidx[ai + 1], is_reverse)
            if not alt:
                logger.warning(
                    "Read %s: empty sequence between anchors %d and %d", read.read_name, ai, ai + 1
                )
            out.alt_sequences[ai] = alt

    logger.debug(
        "Read %s: %d/%d positions anchored (reverse=%s)",
        read.read_name,
        sum(1 for a in template if a.is_set),
        num_anchors,
        is_reverse,
    )
    return out
