from __future__ import annotations

import logging
from typing import List, Sequence

from .errors import AnchorInvariantError, RegionPreconditionError
from .models import AnchoredColumn, EventAnchor, ReadAnchorSet, STRANDS

logger = logging.getLogger(__name__)


def _check_anchor_sets(read_anchor_sets: Sequence[ReadAnchorSet]) -> int:
    if len(read_anchor_sets) == 0:
        raise RegionPreconditionError("No reads to transpose into anchored columns")

    num_anchors = read_anchor_sets[0].num_anchors
    for ras in read_anchor_sets:
        for strand in STRANDS:
            n = len(ras.strand_anchors[strand])
            if n != num_anchors:
                raise AnchorInvariantError(
                    f"Read {ras.read_name} has {n} {strand.value} anchors, expected {num_anchors}"
                )
        if len(ras.alt_sequences) != max(num_anchors - 1, 0):
            raise AnchorInvariantError(
                f"Read {ras.read_name} has {len(ras.alt_sequences)} alternative sequence slots, "
                f"expected {num_anchors - 1}"
            )
    return num_anchors


def transpose_anchor_sets(
    read_anchor_sets: Sequence[ReadAnchorSet],
    ref_segment: str,
    stride: int,
    k: int,
) -> List[AnchoredColumn]:
    """Turn per-read anchor lists into one column per sampled reference position.

    ``ref_segment`` is the reference loaded for the region, starting at the
    first sampled position. Each column except the last gets the reference from
    its position up to the next one plus ``k`` bases (so consecutive columns
    overlap by ``k - 1``), truncated at the end of ``ref_segment``, and every
    read's candidate sequence for that interval. Candidates are neither
    deduplicated nor filtered.
    """
    num_anchors = _check_anchor_sets(read_anchor_sets)

    columns: List[AnchoredColumn] = []
    for ai in range(num_anchors):
        anchors: List[EventAnchor] = []
        for ras in read_anchor_sets:
            for strand in STRANDS:
                anchors.append(ras.strand_anchors[strand][ai])

        if ai == num_anchors - 1:
            columns.append(AnchoredColumn(anchors=anchors))
            continue

        offset = ai * stride
        base_sequence = ref_segment[offset : offset + stride + k]
        if not base_sequence:
            raise AnchorInvariantError(
                f"Reference segment of length {len(ref_segment)} does not cover column {ai} "
                f"(offset {offset})"
            )

        alts = [ras.alt_sequences[ai] for ras in read_anchor_sets if ras.alt_sequences[ai] is not None]
        columns.append(AnchoredColumn(anchors=anchors, base_sequence=base_sequence, alt_sequences=alts))

    logger.debug("Built %d anchored columns from %d reads", len(columns), len(read_anchor_sets))
    return columns
