import numpy as np
import pytest

from squiggleanchor.errors import EventLookupError
from squiggleanchor.event_anchors import extract_alt_sequence, map_read_to_event_anchors
from squiggleanchor.models import EventAnchor, Strand
from squiggleanchor.squiggle import SquiggleRead
from squiggleanchor.utils import reverse_complement

K = 5
SEQ = "ACGGTCATTGACCGTAGGCATTACGATCCGATGCAAGTCTGATCGGCTAAGCTTGACGTA"


def make_read(template=None) -> SquiggleRead:
    n = len(SEQ) - K + 1
    template = np.arange(n) * 2 if template is None else np.asarray(template)
    return SquiggleRead(
        read_name="r1",
        read_sequence=SEQ,
        base_to_event={Strand.TEMPLATE: template, Strand.COMPLEMENT: np.arange(n)[::-1]},
        k=K,
    )


def test_forward_read():
    read = make_read()
    assert len(SEQ) == 60
    ras = map_read_to_event_anchors(read, [0, 20, None, 40], is_reverse=False)

    template = ras.strand_anchors[Strand.TEMPLATE]
    complement = ras.strand_anchors[Strand.COMPLEMENT]
    assert template == [EventAnchor(0, False), EventAnchor(40, False), EventAnchor.unset(), EventAnchor(80, False)]
    assert complement[0] == EventAnchor(55, True)
    assert complement[1] == EventAnchor(35, True)
    assert not complement[2].is_set

    assert ras.alt_sequences == [SEQ[0:25], None, None]


def test_reverse_read_flips_lookup_and_orientation():
    read = make_read()
    ras = map_read_to_event_anchors(read, [0, 20], is_reverse=True)

    # aligned coordinates 0 and 20 land on k-mers 55 and 35 of the sequenced read
    assert ras.strand_anchors[Strand.TEMPLATE] == [EventAnchor(110, True), EventAnchor(70, True)]
    assert ras.strand_anchors[Strand.COMPLEMENT] == [EventAnchor(0, False), EventAnchor(20, False)]

    alt = ras.alt_sequences[0]
    assert alt == reverse_complement(SEQ[35:60])
    # same as reading the aligned (reverse complemented) sequence forward
    assert alt == reverse_complement(SEQ)[0:25]


def test_strand_orientation_flags_are_opposite():
    read = make_read()
    for is_reverse in (False, True):
        ras = map_read_to_event_anchors(read, [10, 30], is_reverse=is_reverse)
        for t, c in zip(ras.strand_anchors[Strand.TEMPLATE], ras.strand_anchors[Strand.COMPLEMENT]):
            assert t.rc is is_reverse
            assert c.rc is not is_reverse


def test_flip_round_trip_recovers_forward_coordinates():
    read = make_read()
    kidx = [3, 17, 29, 44]
    flipped = [read.flip_k_strand(k) for k in kidx]
    assert [read.flip_k_strand(k) for k in flipped] == kidx


def test_unset_positions_propagate():
    read = make_read()
    ras = map_read_to_event_anchors(read, [None, None, None], is_reverse=False)
    assert all(not a.is_set for s in Strand for a in ras.strand_anchors[s])
    assert ras.alt_sequences == [None, None]


def test_alt_sequence_is_clamped():
    read = make_read()
    # end beyond the last k-mer (55)
    assert extract_alt_sequence(read, 50, 70, is_reverse=False) == SEQ[50:60]
    # flipped start falls below zero
    assert extract_alt_sequence(read, 0, 58, is_reverse=True) == reverse_complement(SEQ[0:60])


def test_event_lookup_failure_is_fatal():
    read = make_read(template=np.full(len(SEQ) - K + 1, -1))
    with pytest.raises(EventLookupError):
        map_read_to_event_anchors(read, [None, 10], is_reverse=False)


def make_full_span_read() -> SquiggleRead:
    # a 101M alignment covering [1000, 1100] at stride 50 samples bases 0, 50 and 100
    seq = SEQ + SEQ[:41]
    n = len(seq) - K + 1
    return SquiggleRead(
        read_name="span",
        read_sequence=seq,
        base_to_event={Strand.TEMPLATE: np.arange(n) * 2, Strand.COMPLEMENT: np.arange(n)[::-1]},
        k=K,
    )


def test_forward_read_anchored_on_its_last_base():
    read = make_full_span_read()
    assert read.num_kmers == 97
    ras = map_read_to_event_anchors(read, [0, 50, 100], is_reverse=False)

    # base 100 lies past the last k-mer (96)
    assert [a.event_idx for a in ras.strand_anchors[Strand.TEMPLATE]] == [0, 100, 192]
    assert [a.event_idx for a in ras.strand_anchors[Strand.COMPLEMENT]] == [96, 46, 0]
    assert ras.alt_sequences == [read.read_sequence[0:55], read.read_sequence[50:101]]


def test_reverse_read_anchored_on_its_last_base():
    read = make_full_span_read()
    ras = map_read_to_event_anchors(read, [0, 50, 100], is_reverse=True)

    # aligned base 100 flips to k-mer -4 of the sequenced read
    assert [a.event_idx for a in ras.strand_anchors[Strand.TEMPLATE]] == [192, 92, 0]
    assert [a.event_idx for a in ras.strand_anchors[Strand.COMPLEMENT]] == [0, 50, 96]
    assert ras.alt_sequences[1] == reverse_complement(read.read_sequence[0:51])
