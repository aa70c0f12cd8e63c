from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_column_coverage(
    *,
    summary: Dict[str, Any],
    out_png: str | Path,
    title: str = "Reads anchored per column",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    positions: List[int] = list(summary.get("positions", []))
    template = list(summary.get("template_anchored", []))
    complement = list(summary.get("complement_anchored", []))
    if not (len(positions) == len(template) == len(complement)):
        raise ValueError("summary must contain positions/template_anchored/complement_anchored of equal length")

    plt.figure()
    plt.step(positions, template, where="post", label="template")
    plt.step(positions, complement, where="post", label="complement", linestyle="--")
    plt.axhline(int(summary.get("num_reads", 0)), color="grey", linewidth=0.8)
    plt.xlabel(f"Reference position ({summary.get('contig', '')})")
    plt.ylabel("Reads with an event anchor")
    plt.title(title)
    plt.legend()
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_alt_counts(
    *,
    summary: Dict[str, Any],
    out_png: str | Path,
    title: str = "Candidate sequences per column",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    positions = list(summary.get("positions", []))
    alt_counts = list(summary.get("alt_counts", []))
    stride = int(summary.get("stride", 1))

    plt.figure()
    # the last column has no interval and is left out
    plt.bar(positions[:-1], alt_counts[:-1], width=0.8 * stride, align="edge")
    plt.xlabel(f"Reference position ({summary.get('contig', '')})")
    plt.ylabel("Alternative sequences")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
