import pysam
import pytest

from squiggleanchor.cigar import map_reference_to_read, match_read_to_reference_anchors
from squiggleanchor.errors import RegionPreconditionError, UnsupportedCigarError

START, END = 1000, 1100


def make_record(seq_len: int, cigar, start: int = START, reverse: bool = False) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = "r1"
    a.query_sequence = "A" * seq_len
    a.flag = 16 if reverse else 0
    a.reference_start = start
    a.mapping_quality = 60
    a.cigartuples = cigar
    return a


@pytest.mark.parametrize("stride", [1, 3, 7, 10, 33, 50, 100, 101, 500])
def test_output_length(stride):
    out = map_reference_to_read([(0, 300)], 900, START, END, stride)
    assert len(out) == (END - START) // stride + 1


@pytest.mark.parametrize("stride", [1, 10, 25, 50])
def test_identity_for_pure_match(stride):
    out = map_reference_to_read([(0, 200)], START, START, END, stride)
    assert out == [p - START for p in range(START, END + 1, stride)]


def test_deletion_shifts_later_anchor():
    plain = map_reference_to_read([(0, 200)], START, START, END, 50)
    deleted = map_reference_to_read([(0, 20), (2, 10), (0, 170)], START, START, END, 50)
    assert plain == [0, 50, 100]
    assert deleted == [0, 40, 90]


def test_position_inside_deletion_gets_next_read_base():
    out = map_reference_to_read([(0, 20), (2, 10), (0, 170)], START, START, END, 10)
    assert out[2] == 20  # ref 1020, first deleted base
    assert out[3] == 20  # ref 1030, first base after the deletion
    assert out[4] == 30


def test_insertion_and_clips_advance_read_only():
    assert map_reference_to_read([(0, 30), (1, 5), (0, 170)], START, START, END, 50) == [0, 55, 105]
    assert map_reference_to_read([(4, 12), (0, 200)], START, START, END, 50) == [12, 62, 112]
    assert map_reference_to_read([(5, 7), (0, 200)], START, START, END, 50) == [7, 57, 107]


def test_read_starting_before_region():
    assert map_reference_to_read([(0, 200)], 950, START, END, 50) == [50, 100, 150]


def test_unaligned_positions_are_none():
    assert map_reference_to_read([(0, 60)], START, START, END, 50) == [0, 50, None]
    assert map_reference_to_read([(0, 60)], 1200, START, END, 50) == [None, None, None]
    assert map_reference_to_read([(0, 60)], 1020, START, END, 50) == [None, 30, None]


def test_unsupported_operation_fails_fast():
    with pytest.raises(UnsupportedCigarError):
        map_reference_to_read([(6, 3), (0, 200)], START, START, END, 50)
    with pytest.raises(UnsupportedCigarError):
        map_reference_to_read([(0, 20), (9, 1)], START, START, END, 50)


def test_walk_stops_after_region_end():
    # the bogus operation lies beyond the region and is never inspected
    out = map_reference_to_read([(0, 200), (9, 1)], START, START, END, 50)
    assert out == [0, 50, 100]


def test_query_length_mismatch():
    with pytest.raises(UnsupportedCigarError):
        map_reference_to_read([(0, 50)], START, START, END, 50, query_length=60)


def test_bad_parameters():
    with pytest.raises(RegionPreconditionError):
        map_reference_to_read([(0, 50)], START, START, END, 0)
    with pytest.raises(RegionPreconditionError):
        map_reference_to_read([(0, 50)], START, END, START, 10)


def test_match_read_to_reference_anchors_from_record():
    rec = make_record(190, [(0, 20), (2, 10), (0, 170)])
    assert match_read_to_reference_anchors(rec, START, END, 50) == [0, 40, 90]

    unmapped = make_record(50, [(0, 50)])
    unmapped.flag = 4
    assert match_read_to_reference_anchors(unmapped, START, END, 50) == [None, None, None]
