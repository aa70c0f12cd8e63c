"""Map sampled reference positions to read base coordinates by walking a CIGAR."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import pysam

from .errors import RegionPreconditionError, UnsupportedCigarError

logger = logging.getLogger(__name__)

# (ref_inc, read_inc) per pysam CIGAR operation code.
# Hard clips advance the read cursor: read coordinates index the full
# basecalled sequence, which still contains the hard-clipped bases.
_CIGAR_INCREMENTS: Dict[int, Tuple[int, int]] = {
    pysam.CMATCH: (1, 1),
    pysam.CEQUAL: (1, 1),
    pysam.CDIFF: (1, 1),
    pysam.CDEL: (1, 0),
    pysam.CREF_SKIP: (1, 0),
    pysam.CINS: (0, 1),
    pysam.CSOFT_CLIP: (0, 1),
    pysam.CHARD_CLIP: (0, 1),
}

# operations whose bases are stored in the BAM query sequence
_QUERY_CONSUMING = {pysam.CMATCH, pysam.CEQUAL, pysam.CDIFF, pysam.CINS, pysam.CSOFT_CLIP}


def num_anchors_for_region(start: int, end: int, stride: int) -> int:
    """Number of sampled reference positions in [start, end] at the given stride."""
    if stride <= 0:
        raise RegionPreconditionError(f"stride must be positive, got {stride}")
    if end < start:
        raise RegionPreconditionError(f"region end {end} is before start {start}")
    return (end - start) // stride + 1


def map_reference_to_read(
    cigartuples: Sequence[Tuple[int, int]],
    reference_start: int,
    region_start: int,
    region_end: int,
    stride: int,
    *,
    query_length: Optional[int] = None,
) -> List[Optional[int]]:
    """Return the read base coordinate aligned to every stride-th reference base.

    Slot ``i`` corresponds to reference position ``region_start + i * stride``.
    Positions outside the alignment stay None. A position inside a deletion or
    reference skip gets the coordinate of the next read base.

    Parameters
    ----------
    cigartuples:
        ``(op, length)`` pairs with pysam operation codes.
    reference_start:
        0-based leftmost reference position of the alignment.
    region_start, region_end:
        0-based inclusive bounds of the queried interval.
    stride:
        Spacing of sampled positions, counted from ``region_start``.
    query_length:
        If given, the number of query bases implied by the CIGAR is checked
        against it after a complete walk.
    """
    num_anchors = num_anchors_for_region(region_start, region_end, stride)
    out: List[Optional[int]] = [None] * num_anchors

    ref_pos = reference_start
    # index into the basecalled read sequence
    read_pos = 0
    # index into the sequence stored in the BAM record; sanity check only
    query_pos = 0
    walked_all = True

    for op, length in cigartuples:
        if ref_pos > region_end:
            walked_all = False
            break

        try:
            ref_inc, read_inc = _CIGAR_INCREMENTS[op]
        except KeyError:
            raise UnsupportedCigarError(f"Unhandled CIGAR operation code {op}") from None

        if ref_inc > 0:
            for _ in range(length):
                if region_start <= ref_pos <= region_end and (ref_pos - region_start) % stride == 0:
                    out[(ref_pos - region_start) // stride] = read_pos
                read_pos += read_inc
                ref_pos += ref_inc
                if ref_pos > region_end:
                    break
        else:
            read_pos += read_inc * length

        if op in _QUERY_CONSUMING:
            query_pos += length

    if walked_all and query_length is not None and query_length > 0 and query_pos != query_length:
        raise UnsupportedCigarError(
            f"CIGAR consumes {query_pos} query bases but the record stores {query_length}"
        )
    return out


def match_read_to_reference_anchors(
    record: pysam.AlignedSegment, start: int, end: int, stride: int
) -> List[Optional[int]]:
    """Walk one BAM record; see :func:`map_reference_to_read`."""
    if record.is_unmapped or record.cigartuples is None:
        return [None] * num_anchors_for_region(start, end, stride)

    query_length = record.query_length if record.query_sequence is not None else None
    return map_reference_to_read(
        record.cigartuples,
        int(record.reference_start),
        start,
        end,
        stride,
        query_length=query_length,
    )
