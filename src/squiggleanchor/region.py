from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import pysam
from tqdm import tqdm

from .cigar import map_reference_to_read, num_anchors_for_region
from .columns import transpose_anchor_sets
from .errors import AnchorError, AnchorInvariantError, RegionPreconditionError
from .event_anchors import map_read_to_event_anchors
from .models import DEFAULT_K, ReadAnchorSet, RegionInput
from .squiggle import Fast5Map, SquiggleRead
from .validation import check_bam_index, check_fasta_index, check_region_parameters, format_region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ReadJob:
    """Alignment fields needed to anchor one read, detached from pysam."""

    seq_no: int
    read_name: str
    reference_start: int
    is_reverse: bool
    cigartuples: Tuple[Tuple[int, int], ...]
    query_length: Optional[int]


def _collect_jobs(
    records: Iterable[pysam.AlignedSegment],
    counts: Dict[str, int],
    *,
    exclude_secondary: bool,
    exclude_supplementary: bool,
) -> List[_ReadJob]:
    jobs: List[_ReadJob] = []
    for rec in records:
        counts["records_total"] += 1
        if rec.is_unmapped or rec.cigartuples is None:
            counts["records_skipped_unmapped"] += 1
            continue
        if rec.is_secondary and exclude_secondary:
            counts["records_skipped_secondary"] += 1
            continue
        if rec.is_supplementary and exclude_supplementary:
            counts["records_skipped_supplementary"] += 1
            continue

        jobs.append(
            _ReadJob(
                seq_no=len(jobs),
                read_name=str(rec.query_name),
                reference_start=int(rec.reference_start),
                is_reverse=bool(rec.is_reverse),
                cigartuples=tuple(rec.cigartuples),
                query_length=rec.query_length if rec.query_sequence is not None else None,
            )
        )
    counts["records_used"] = len(jobs)
    return jobs


def anchor_read(
    job: _ReadJob,
    read: SquiggleRead,
    start: int,
    end: int,
    stride: int,
) -> ReadAnchorSet:
    """Cigar walk plus event mapping for one alignment record."""
    read_kidx = map_reference_to_read(
        job.cigartuples,
        job.reference_start,
        start,
        end,
        stride,
        query_length=job.query_length,
    )
    return map_read_to_event_anchors(read, read_kidx, job.is_reverse)


def build_input_for_region(
    bam_path: str | Path,
    ref_path: str | Path,
    read_map: Fast5Map,
    contig: str,
    start: int,
    end: int,
    stride: int,
    *,
    k: int = DEFAULT_K,
    threads: int = 1,
    exclude_secondary: bool = False,
    exclude_supplementary: bool = False,
    progress: bool = False,
) -> RegionInput:
    """Build the anchored columns for reference interval ``[start, end]``.

    Every read aligned to the interval is loaded from its FAST5 file, its
    alignment is sampled every ``stride`` reference bases, and the samples are
    converted to event anchors on both strands. The per-read anchors are then
    transposed into one :class:`AnchoredColumn` per sampled position.

    Parameters
    ----------
    bam_path:
        Sorted, indexed BAM of the 2D reads against the reference.
    ref_path:
        Reference FASTA with a .fai index.
    read_map:
        Read name to FAST5 lookup.
    contig, start, end:
        Region, 0-based with inclusive end.
    stride:
        Spacing of anchors in reference bases.
    k:
        k-mer size of the pore model.
    threads:
        Worker threads for per-read anchoring. Output order does not depend on it.
    exclude_secondary, exclude_supplementary:
        Skip secondary or supplementary records. By default every mapped
        record overlapping the region is anchored.

    Raises
    ------
    AnchorError
        Any failure aborts the whole region; no partial result is returned.
    """
    region = format_region(contig, start, end)
    t0 = time.time()

    try:
        check_region_parameters(start, end, stride, k)
        check_bam_index(bam_path)
        check_fasta_index(ref_path)
    except ValueError as e:
        raise RegionPreconditionError(str(e), region=region) from e

    num_anchors = num_anchors_for_region(start, end, stride)
    counts: Dict[str, int] = {
        "records_total": 0,
        "records_used": 0,
        "records_skipped_unmapped": 0,
        "records_skipped_secondary": 0,
        "records_skipped_supplementary": 0,
    }

    try:
        with pysam.FastaFile(str(ref_path)) as fasta:
            if contig not in fasta.references:
                raise RegionPreconditionError(f"Contig '{contig}' not in reference {ref_path}", region=region)
            # faidx semantics: both ends inclusive
            ref_segment = fasta.fetch(contig, start, end + 1).upper()

        with pysam.AlignmentFile(str(bam_path), "rb") as bam:
            if contig not in bam.references:
                raise RegionPreconditionError(f"Contig '{contig}' not in BAM header {bam_path}", region=region)
            jobs = _collect_jobs(
                bam.fetch(contig, start, end + 1),
                counts,
                exclude_secondary=exclude_secondary,
                exclude_supplementary=exclude_supplementary,
            )
    except (OSError, ValueError) as e:
        raise RegionPreconditionError(f"Cannot read inputs: {e}", region=region) from e

    logger.info(
        "%s: %d alignment records fetched, %d used; reference segment of %d bases",
        region,
        counts["records_total"],
        counts["records_used"],
        len(ref_segment),
    )

    if not jobs:
        raise RegionPreconditionError("No reads aligned to region", region=region)

    # pre-sized, filled by read sequence number so output order is deterministic
    reads: List[Optional[SquiggleRead]] = [None] * len(jobs)
    anchor_sets: List[Optional[ReadAnchorSet]] = [None] * len(jobs)

    def _run(job: _ReadJob) -> None:
        read = read_map.load(job.read_name, k=k)
        reads[job.seq_no] = read
        anchor_sets[job.seq_no] = anchor_read(job, read, start, end, stride)

    bar = tqdm(total=len(jobs), unit="read", desc=f"Anchoring {region}", disable=not progress)
    try:
        if threads <= 1:
            for job in jobs:
                _run(job)
                bar.update(1)
        else:
            with ThreadPoolExecutor(max_workers=threads) as executor:
                futures = [executor.submit(_run, job) for job in jobs]
                for fut in futures:
                    fut.add_done_callback(lambda _f: bar.update(1))
                done, pending = wait(futures, return_when=FIRST_EXCEPTION)
                for fut in pending:
                    fut.cancel()
                for fut in futures:
                    if fut in done:
                        # re-raise the first failure in read order
                        fut.result()
    except AnchorError as e:
        if e.region is None:
            e.region = region
            e.args = (f"{e.args[0]} (region {region})",) + e.args[1:]
        raise
    finally:
        bar.close()

    for ras in anchor_sets:
        if ras is None or ras.num_anchors != num_anchors:
            raise AnchorInvariantError(
                f"Read anchor set has {None if ras is None else ras.num_anchors} anchors, "
                f"expected {num_anchors}",
                region=region,
            )

    columns = transpose_anchor_sets(anchor_sets, ref_segment, stride, k)  # type: ignore[arg-type]

    logger.info(
        "%s: %d anchored columns from %d reads in %.2fs",
        region,
        len(columns),
        len(jobs),
        time.time() - t0,
    )
    return RegionInput(
        contig=contig,
        start=start,
        end=end,
        stride=stride,
        k=k,
        reads=reads,  # type: ignore[arg-type]
        anchored_columns=columns,
        stats=counts,
    )
