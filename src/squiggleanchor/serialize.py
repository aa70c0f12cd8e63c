"""JSON serialization of region input for downstream consumers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

from .models import AnchoredColumn, EventAnchor, RegionInput
from .utils import read_json, write_json

logger = logging.getLogger(__name__)

FORMAT_VERSION = 1


def _column_to_dict(col: AnchoredColumn) -> Dict[str, Any]:
    return {
        "anchors": [[a.event_idx, a.rc] for a in col.anchors],
        "base_sequence": col.base_sequence,
        "alt_sequences": list(col.alt_sequences),
    }


def _column_from_dict(d: Dict[str, Any]) -> AnchoredColumn:
    anchors = [EventAnchor(event_idx=None if idx is None else int(idx), rc=bool(rc)) for idx, rc in d["anchors"]]
    return AnchoredColumn(
        anchors=anchors,
        base_sequence=str(d.get("base_sequence", "")),
        alt_sequences=[str(s) for s in d.get("alt_sequences", [])],
    )


def region_input_to_dict(region: RegionInput) -> Dict[str, Any]:
    return {
        "format_version": FORMAT_VERSION,
        "contig": region.contig,
        "start": region.start,
        "end": region.end,
        "stride": region.stride,
        "k": region.k,
        "reads": [{"name": r.read_name, "path": r.path} for r in region.reads],
        "anchored_columns": [_column_to_dict(c) for c in region.anchored_columns],
    }


def write_region_input(region: RegionInput, path: str | Path) -> Path:
    """Write region input as JSON (gzip-compressed if ``path`` ends with .gz)."""
    path = Path(path)
    write_json(path, region_input_to_dict(region))
    logger.info("Wrote %d anchored columns to %s", region.num_anchors, path)
    return path


def read_region_columns(path: str | Path) -> List[AnchoredColumn]:
    data = read_json(path)
    version = data.get("format_version")
    if version != FORMAT_VERSION:
        raise ValueError(f"{path}: unsupported format_version {version!r}")
    return [_column_from_dict(d) for d in data["anchored_columns"]]
