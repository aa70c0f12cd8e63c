"""squiggleanchor: anchor construction for signal-level HMM realignment.

Builds, for a reference region, the per-column event anchors and candidate
sequences consumed by a nanopore signal-level consensus/polishing HMM.
Most users should use the CLI:

    squiggleanchor build --bam ... --ref ... --read-map ... --region chr:s-e --outdir ...

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
