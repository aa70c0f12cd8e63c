from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Tuple

logger = logging.getLogger(__name__)

_REGION_RE = re.compile(r"^(?P<contig>[^:\s]+):(?P<start>[\d,]+)-(?P<end>[\d,]+)$")


def parse_region(region: str) -> Tuple[str, int, int]:
    """Parse ``contig:start-end`` (0-based, inclusive end; commas allowed)."""
    m = _REGION_RE.match(region.strip())
    if m is None:
        raise ValueError(f"Malformed region '{region}'; expected contig:start-end")
    start = int(m.group("start").replace(",", ""))
    end = int(m.group("end").replace(",", ""))
    if end < start:
        raise ValueError(f"Region end {end} is before start {start} in '{region}'")
    return m.group("contig"), start, end


def format_region(contig: str, start: int, end: int) -> str:
    return f"{contig}:{start}-{end}"


def check_region_parameters(start: int, end: int, stride: int, k: int) -> None:
    """Validate region geometry; raise ValueError with the offending value."""
    if start < 0:
        raise ValueError(f"Region start must be >= 0, got {start}")
    if end < start:
        raise ValueError(f"Region end {end} is before start {start}")
    if stride <= 0:
        raise ValueError(f"Stride must be positive, got {stride}")
    if k <= 0:
        raise ValueError(f"k-mer size must be positive, got {k}")
    if end - start < stride:
        logger.warning(
            "Region %d-%d is shorter than the stride (%d); only one anchor will be sampled.",
            start,
            end,
            stride,
        )


def check_bam_index(bam_path: str | Path) -> None:
    """Ensure a BAM has an index; raise ValueError with fix instructions."""
    bam = Path(bam_path)
    bai1 = bam.with_suffix(bam.suffix + ".bai")
    bai2 = bam.with_suffix(".bai")
    if bai1.exists() or bai2.exists():
        return
    raise ValueError(
        "BAM is not indexed. Run: samtools index " + str(bam)
    )


def check_fasta_index(fasta_path: str | Path) -> None:
    """Ensure a FASTA has a .fai index; raise ValueError with fix instructions."""
    fa = Path(fasta_path)
    fai = fa.with_suffix(fa.suffix + ".fai")
    if fai.exists():
        return
    raise ValueError(
        "Reference FASTA is not indexed. Run: samtools faidx " + str(fa)
    )
