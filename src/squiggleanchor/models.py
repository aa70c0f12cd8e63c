from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .squiggle import SquiggleRead

# k-mer window of the pore model; consecutive reference segments overlap by K - 1
DEFAULT_K = 5
DEFAULT_STRIDE = 50


class Strand(enum.Enum):
    """The two physical strands of a 2D nanopore read."""

    TEMPLATE = "template"
    COMPLEMENT = "complement"


STRANDS: Tuple[Strand, Strand] = (Strand.TEMPLATE, Strand.COMPLEMENT)


@dataclass(frozen=True)
class EventAnchor:
    """Mapping of one sampled reference position to an event on one strand.

    Attributes
    ----------
    event_idx:
        Index of the nearest event in the strand's event table, or None when the
        read is not aligned at this reference position.
    rc:
        True if the events on this strand read the reference in reverse
        complement orientation.
    """

    event_idx: Optional[int]
    rc: bool = False

    @classmethod
    def unset(cls) -> "EventAnchor":
        return cls(event_idx=None, rc=False)

    @property
    def is_set(self) -> bool:
        return self.event_idx is not None


@dataclass
class ReadAnchorSet:
    """Per-read anchors for both strands plus candidate sequences.

    ``strand_anchors[s][i]`` is the anchor of sampled position ``i`` on strand
    ``s``. ``alt_sequences[i]`` is this read's sequence for the interval between
    positions ``i`` and ``i + 1``, or None when either end is unset.
    """

    read_name: str
    strand_anchors: Dict[Strand, List[EventAnchor]]
    alt_sequences: List[Optional[str]]

    @classmethod
    def empty(cls, read_name: str, num_anchors: int) -> "ReadAnchorSet":
        return cls(
            read_name=read_name,
            strand_anchors={s: [EventAnchor.unset()] * num_anchors for s in STRANDS},
            alt_sequences=[None] * max(num_anchors - 1, 0),
        )

    @property
    def num_anchors(self) -> int:
        return len(self.strand_anchors[Strand.TEMPLATE])


@dataclass(frozen=True)
class AnchoredColumn:
    """All reads' anchors at one sampled reference position.

    ``anchors`` holds two entries per read (template then complement) in read
    processing order. ``base_sequence`` spans from this anchor to the next plus
    K - 1 overlapping bases; it is empty for the final column.
    """

    anchors: List[EventAnchor]
    base_sequence: str = ""
    alt_sequences: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class RegionInput:
    """Everything the realignment HMM needs for one reference region."""

    contig: str
    start: int
    end: int
    stride: int
    k: int
    reads: List["SquiggleRead"]
    anchored_columns: List[AnchoredColumn]
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def region(self) -> str:
        return f"{self.contig}:{self.start}-{self.end}"

    @property
    def num_reads(self) -> int:
        return len(self.reads)

    @property
    def num_anchors(self) -> int:
        return len(self.anchored_columns)

    def summary(self) -> Dict[str, object]:
        """Per-column coverage counters (JSON-serializable)."""
        template_set: List[int] = []
        complement_set: List[int] = []
        alt_counts: List[int] = []
        for col in self.anchored_columns:
            # anchors alternate template/complement per read
            template_set.append(sum(1 for a in col.anchors[0::2] if a.is_set))
            complement_set.append(sum(1 for a in col.anchors[1::2] if a.is_set))
            alt_counts.append(len(col.alt_sequences))

        return {
            "region": self.region,
            "contig": self.contig,
            "start": self.start,
            "end": self.end,
            "stride": self.stride,
            "k": self.k,
            "num_reads": self.num_reads,
            "num_columns": self.num_anchors,
            "read_names": [r.read_name for r in self.reads],
            "positions": [self.start + i * self.stride for i in range(self.num_anchors)],
            "template_anchored": template_set,
            "complement_anchored": complement_set,
            "alt_counts": alt_counts,
            "record_stats": dict(self.stats),
        }
