import gzip
from pathlib import Path

import numpy as np
import pytest

from squiggleanchor.errors import EventLookupError, ReadNotFoundError, RegionPreconditionError
from squiggleanchor.models import Strand
from squiggleanchor.squiggle import Fast5Map, SquiggleRead, write_fast5


def make_read(template, complement=None, seq_len=None, k=5) -> SquiggleRead:
    n = len(template)
    seq_len = seq_len if seq_len is not None else n + k - 1
    complement = complement if complement is not None else list(range(n))
    return SquiggleRead(
        read_name="r1",
        read_sequence=("ACGTT" * seq_len)[:seq_len],
        base_to_event={
            Strand.TEMPLATE: np.array(template),
            Strand.COMPLEMENT: np.array(complement),
        },
        k=k,
    )


def test_closest_event_searches_outward():
    read = make_read([-1, -1, 5, -1, 9])
    assert read.get_closest_event_to(0, Strand.TEMPLATE) == 5
    assert read.get_closest_event_to(2, Strand.TEMPLATE) == 5
    # equidistant between k-mers 2 and 4: lower index wins
    assert read.get_closest_event_to(3, Strand.TEMPLATE) == 5
    assert read.get_closest_event_to(4, Strand.TEMPLATE) == 9
    assert read.get_closest_event_to(1, Strand.COMPLEMENT) == 1


def test_closest_event_failures():
    read = make_read([-1, -1, -1], complement=[-1, -1, -1])
    for strand in Strand:
        for k_idx in (-1, 1, 3):
            with pytest.raises(EventLookupError):
                read.get_closest_event_to(k_idx, strand)

    # a sequence shorter than k has no k-mers at all
    short = make_read([], complement=[], seq_len=3)
    with pytest.raises(EventLookupError):
        short.get_closest_event_to(0, Strand.TEMPLATE)


def test_flip_is_an_involution():
    read = make_read(list(range(16)))
    assert len(read.read_sequence) == 20
    assert read.flip_k_strand(0) == 15
    assert read.flip_k_strand(15) == 0
    for k_idx in range(16):
        assert read.flip_k_strand(read.flip_k_strand(k_idx)) == k_idx


def test_event_table_shape_is_checked():
    with pytest.raises(RegionPreconditionError):
        make_read([0, 1, 2], seq_len=10)


def test_fast5_round_trip(tmp_path: Path):
    seq = "ACGTACGTTTGCA"
    template = np.arange(9)
    complement = np.arange(9)[::-1]
    path = write_fast5(tmp_path / "r.fast5", "r", seq, template, complement)

    read = SquiggleRead.from_fast5("r", path)
    assert read.read_sequence == seq
    assert read.num_kmers == 9
    assert read.base_to_event[Strand.TEMPLATE].tolist() == template.tolist()
    assert read.base_to_event[Strand.COMPLEMENT].tolist() == complement.tolist()
    assert read.path == str(path)


def test_from_fast5_missing_file(tmp_path: Path):
    with pytest.raises(RegionPreconditionError):
        SquiggleRead.from_fast5("r", tmp_path / "missing.fast5")


def test_read_map_from_tsv(tmp_path: Path):
    write_fast5(tmp_path / "fast5" / "a.fast5", "a", "ACGTACGT", np.arange(4), np.arange(4))
    map_path = tmp_path / "map.tsv.gz"
    with gzip.open(map_path, "wt") as fh:
        fh.write("# read_name\tpath\n")
        fh.write("a\tfast5/a.fast5\n")
        fh.write("b\t/abs/b.fast5\n")

    read_map = Fast5Map.from_tsv(map_path)
    assert len(read_map) == 2
    assert "a" in read_map
    assert read_map.get_path("a") == str(tmp_path / "fast5" / "a.fast5")
    assert read_map.get_path("b") == "/abs/b.fast5"
    assert read_map.load("a").read_sequence == "ACGTACGT"

    with pytest.raises(RegionPreconditionError) as excinfo:
        read_map.get_path("c")
    assert isinstance(excinfo.value, ReadNotFoundError)
    assert excinfo.value.read_name == "c"


def test_read_map_rejects_malformed_lines(tmp_path: Path):
    map_path = tmp_path / "map.tsv"
    map_path.write_text("only_one_field\n", encoding="utf-8")
    with pytest.raises(ValueError):
        Fast5Map.from_tsv(map_path)


def test_closest_event_for_coordinates_past_the_last_kmer():
    read = make_read([-1, -1, 5, -1, 9])
    # trailing k - 1 bases of an aligned read have no k-mer of their own
    assert read.get_closest_event_to(5, Strand.TEMPLATE) == 9
    assert read.get_closest_event_to(8, Strand.TEMPLATE) == 9
    # flipped coordinates of a reverse read can fall below zero
    assert read.get_closest_event_to(-4, Strand.TEMPLATE) == 5
