from __future__ import annotations

import random
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pysam

from .models import DEFAULT_K
from .squiggle import Fast5Map, write_fast5
from .utils import ensure_outdir, reverse_complement, write_json

TOY_CONTIG = "chr1"
TOY_REGION = (1000, 1100)
TOY_STRIDE = 50


def _write_fasta(path: Path, contig: str, seq: str) -> None:
    lines = [f">{contig}"]
    for i in range(0, len(seq), 60):
        lines.append(seq[i : i + 60])
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def toy_event_tables(num_kmers: int, *, gap_every: int = 7) -> Tuple[np.ndarray, np.ndarray]:
    """Synthetic k-mer to event tables with periodic unassigned k-mers.

    Template events increase along the read; complement events run the other way,
    as the complement strand is read in the opposite direction.
    """
    idx = np.arange(num_kmers, dtype=np.int64)
    template = 2 * idx
    complement = 2 * (num_kmers - 1 - idx) + 1
    if gap_every > 0:
        template[3::gap_every] = -1
        complement[5::gap_every] = -1
    return template, complement


def _make_record(
    name: str,
    start0: int,
    seq: str,
    cigar: List[Tuple[int, int]],
    *,
    reverse: bool = False,
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = 16 if reverse else 0
    a.reference_id = 0
    a.reference_start = start0
    a.mapping_quality = 60
    a.cigartuples = cigar
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    return a


def make_toy_data(*, outdir: str | Path, k: int = DEFAULT_K) -> Dict[str, str]:
    """Create a tiny reference, BAM, FAST5 reads and read map for demos/tests.

    The BAM holds three 2D reads over ``chr1:1000-1100``:

    - ``read_fwd``: forward, 950-1100, no indels
    - ``read_del``: forward, 950-1109, 10 bp deletion at 1020-1029
    - ``read_rev``: reverse complement, 960-1100, no indels

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    rng = random.Random(11)

    ref_seq = "".join(rng.choice("ACGT") for _ in range(1500))
    ref_fa = outdir_p / "toy_ref.fa"
    _write_fasta(ref_fa, TOY_CONTIG, ref_seq)
    pysam.faidx(str(ref_fa))

    # (name, start, aligned sequence, cigar, reverse)
    reads = [
        ("read_fwd", 950, ref_seq[950:1101], [(0, 151)], False),
        ("read_del", 950, ref_seq[950:1020] + ref_seq[1030:1110], [(0, 70), (2, 10), (0, 80)], False),
        ("read_rev", 960, ref_seq[960:1101], [(0, 141)], True),
    ]

    fast5_dir = ensure_outdir(outdir_p / "fast5")
    paths: Dict[str, str] = {}
    records: List[pysam.AlignedSegment] = []
    for name, start0, aligned_seq, cigar, reverse in reads:
        records.append(_make_record(name, start0, aligned_seq, cigar, reverse=reverse))

        # FAST5 holds the read as sequenced, i.e. before reverse complementing
        called = reverse_complement(aligned_seq) if reverse else aligned_seq
        template, complement = toy_event_tables(len(called) - k + 1)
        fast5 = write_fast5(fast5_dir / f"{name}.fast5", name, called, template, complement)
        paths[name] = str(fast5.relative_to(outdir_p))

    bam_path = outdir_p / "reads.bam"
    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": TOY_CONTIG, "LN": len(ref_seq)}],
    }
    records.sort(key=lambda r: r.reference_start)
    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in records:
            bam.write(r)
    pysam.index(str(bam_path))

    read_map_path = Fast5Map(paths).write_tsv(outdir_p / "reads.fast5map.tsv")

    summary = {
        "ref_fa": str(ref_fa),
        "bam": str(bam_path),
        "read_map": str(read_map_path),
        "region": f"{TOY_CONTIG}:{TOY_REGION[0]}-{TOY_REGION[1]}",
        "stride": str(TOY_STRIDE),
        "outdir": str(outdir_p),
    }

    write_json(outdir_p / "toy_summary.json", summary)
    return summary
