"""Raw-signal read repository.

A :class:`SquiggleRead` holds a 2D basecalled sequence together with, for each
strand, the first event assigned to every k-mer of that sequence. Reads are
stored in FAST5 (HDF5) files and located through a :class:`Fast5Map`.

FAST5 layout read and written here::

    /Analyses/Basecall_2D_000/BaseCalled_2D/Fastq        FASTQ record (text)
    /Analyses/Basecall_2D_000/BaseCalled_2D/BaseToEvent  int32 (num_kmers, 2)
                                                         columns: template, complement
                                                         -1 where no event is assigned
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional

import h5py
import numpy as np

from .errors import EventLookupError, ReadNotFoundError, RegionPreconditionError
from .models import DEFAULT_K, STRANDS, Strand
from .utils import clamp, open_textmaybe_gzip

logger = logging.getLogger(__name__)

BASECALL_2D_GROUP = "/Analyses/Basecall_2D_000/BaseCalled_2D"

# maximum distance (in k-mers) searched for the closest event
_MAX_EVENT_SEARCH = 1000


@dataclass
class SquiggleRead:
    """A loaded read: basecalled sequence plus per-strand k-mer to event tables."""

    read_name: str
    read_sequence: str
    base_to_event: Dict[Strand, np.ndarray]
    k: int = DEFAULT_K
    path: Optional[str] = None

    def __post_init__(self) -> None:
        n = self.num_kmers
        for strand in STRANDS:
            table = np.asarray(self.base_to_event[strand], dtype=np.int64)
            if table.shape != (n,):
                raise RegionPreconditionError(
                    f"Read {self.read_name}: {strand.value} event table has shape "
                    f"{table.shape}, expected ({n},)"
                )
            self.base_to_event[strand] = table

    @property
    def num_kmers(self) -> int:
        return max(len(self.read_sequence) - self.k + 1, 0)

    def flip_k_strand(self, k_idx: int) -> int:
        """Mirror a k-mer index onto the reverse complement of the read."""
        return len(self.read_sequence) - k_idx - self.k

    def get_closest_event_to(self, k_idx: int, strand: Strand) -> int:
        """Return the event of the nearest k-mer to ``k_idx`` that has one.

        Ties go to the lower k-mer index. Base coordinates in the last k - 1
        bases of the read (or below zero after a flip) start the search from
        the nearest k-mer that exists.
        """
        table = self.base_to_event[strand]
        n = len(table)
        if n == 0:
            raise EventLookupError(f"Read {self.read_name}: no {strand.value} k-mers")
        k_idx = clamp(k_idx, 0, n - 1)

        for d in range(0, min(_MAX_EVENT_SEARCH, n) + 1):
            lo = k_idx - d
            if lo >= 0 and table[lo] >= 0:
                return int(table[lo])
            hi = k_idx + d
            if d > 0 and hi < n and table[hi] >= 0:
                return int(table[hi])
            if lo < 0 and hi >= n:
                break

        raise EventLookupError(
            f"Read {self.read_name}: no {strand.value} event within "
            f"{_MAX_EVENT_SEARCH} k-mers of index {k_idx}"
        )

    @classmethod
    def from_fast5(cls, read_name: str, path: str | Path, *, k: int = DEFAULT_K) -> "SquiggleRead":
        """Load a read from a FAST5 file (see module docstring for the layout)."""
        try:
            with h5py.File(str(path), "r") as f:
                grp = f[BASECALL_2D_GROUP]
                fastq = grp["Fastq"][()]
                table = np.asarray(grp["BaseToEvent"][()], dtype=np.int64)
        except (OSError, KeyError) as e:
            raise RegionPreconditionError(f"Cannot load FAST5 for read {read_name} from {path}: {e}") from e

        if isinstance(fastq, bytes):
            fastq = fastq.decode("ascii")
        lines = str(fastq).splitlines()
        if len(lines) < 2:
            raise RegionPreconditionError(f"FAST5 {path} has no 2D sequence")

        if table.ndim != 2 or table.shape[1] != 2:
            raise RegionPreconditionError(
                f"FAST5 {path}: BaseToEvent must have shape (num_kmers, 2), got {table.shape}"
            )

        return cls(
            read_name=read_name,
            read_sequence=lines[1].strip(),
            base_to_event={Strand.TEMPLATE: table[:, 0], Strand.COMPLEMENT: table[:, 1]},
            k=k,
            path=str(path),
        )


def write_fast5(
    path: str | Path,
    read_name: str,
    read_sequence: str,
    template_events: np.ndarray,
    complement_events: np.ndarray,
) -> Path:
    """Write a minimal 2D FAST5 file readable by :meth:`SquiggleRead.from_fast5`."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    table = np.stack(
        [np.asarray(template_events, dtype=np.int32), np.asarray(complement_events, dtype=np.int32)],
        axis=1,
    )
    fastq = f"@{read_name}\n{read_sequence}\n+\n{'!' * len(read_sequence)}\n"

    with h5py.File(str(path), "w") as f:
        grp = f.require_group(BASECALL_2D_GROUP)
        grp.create_dataset("Fastq", data=np.bytes_(fastq))
        grp.create_dataset("BaseToEvent", data=table)
    return path


class Fast5Map:
    """Lookup from read name to the FAST5 file holding its signal."""

    def __init__(self, paths: Mapping[str, str | Path]) -> None:
        self._paths: Dict[str, str] = {str(k): str(v) for k, v in paths.items()}

    @classmethod
    def from_tsv(cls, path: str | Path) -> "Fast5Map":
        """Parse ``read_name<TAB>fast5_path`` lines; relative paths are resolved
        against the map file's directory."""
        path = Path(path)
        base = path.parent
        paths: Dict[str, str] = {}
        with open_textmaybe_gzip(path, "rt") as fh:
            for line_no, line in enumerate(fh, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                fields = line.split("\t")
                if len(fields) < 2:
                    raise ValueError(f"{path}:{line_no}: expected 'read_name<TAB>path'")
                fast5 = Path(fields[1])
                if not fast5.is_absolute():
                    fast5 = base / fast5
                if fields[0] in paths:
                    logger.warning("Duplicate read name %s in %s; keeping the last entry", fields[0], path)
                paths[fields[0]] = str(fast5)

        logger.info("Loaded %d read paths from %s", len(paths), path)
        return cls(paths)

    def __len__(self) -> int:
        return len(self._paths)

    def __contains__(self, read_name: object) -> bool:
        return read_name in self._paths

    def __iter__(self) -> Iterator[str]:
        return iter(self._paths)

    def get_path(self, read_name: str) -> str:
        try:
            return self._paths[read_name]
        except KeyError:
            raise ReadNotFoundError(read_name) from None

    def load(self, read_name: str, *, k: int = DEFAULT_K) -> SquiggleRead:
        return SquiggleRead.from_fast5(read_name, self.get_path(read_name), k=k)

    def write_tsv(self, path: str | Path) -> Path:
        path = Path(path)
        with open_textmaybe_gzip(path, "wt") as fh:
            for name, fast5 in sorted(self._paths.items()):
                fh.write(f"{name}\t{fast5}\n")
        return path
