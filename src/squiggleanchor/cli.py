from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .models import DEFAULT_K, DEFAULT_STRIDE
from .plotting import plot_alt_counts, plot_column_coverage
from .region import build_input_for_region
from .report import render_report
from .serialize import write_region_input
from .squiggle import Fast5Map
from .toy_data import make_toy_data
from .utils import ensure_outdir, write_json
from .validation import check_bam_index, check_fasta_index, check_region_parameters, parse_region


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _positive_int(v: str) -> int:
    try:
        n = int(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an integer: {v}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"Must be positive: {v}")
    return n


def _log_path(outdir: Path, name: str) -> Path:
    return outdir / "logs" / name


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    sys.stderr.write(f"{err.__class__.__name__}: {err}\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="squiggleanchor",
        description=(
            "squiggleanchor: build event anchors and candidate sequences for a reference "
            "region from 2D nanopore reads, as input for signal-level HMM realignment."
        ),
    )
    p.add_argument("--version", action="version", version=f"squiggleanchor {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny reference, BAM, FAST5 reads and read map for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # build
    # -----------------
    b = sub.add_parser(
        "build",
        help="Build anchored columns for one reference region.",
    )
    b.add_argument("--bam", required=True, type=_path_exists, help="Input BAM (sorted, indexed).")
    b.add_argument("--ref", required=True, type=_path_exists, help="Reference FASTA (faidx indexed).")
    b.add_argument(
        "--read-map",
        required=True,
        type=_path_exists,
        help="TSV of read_name<TAB>fast5_path (.gz allowed).",
    )
    b.add_argument("--region", required=True, help="Region contig:start-end (0-based, inclusive end).")
    b.add_argument(
        "--stride",
        type=_positive_int,
        default=DEFAULT_STRIDE,
        help="Spacing of anchors in reference bases.",
    )
    b.add_argument("-k", "--kmer-size", type=_positive_int, default=DEFAULT_K, help="Pore model k-mer size.")
    b.add_argument("--threads", type=_positive_int, default=1, help="Worker threads for per-read anchoring.")
    b.add_argument("--exclude-secondary", action="store_true", help="Skip secondary alignments.")
    b.add_argument(
        "--exclude-supplementary", action="store_true", help="Skip supplementary alignments."
    )
    b.add_argument("--outdir", required=True, help="Output directory.")
    b.add_argument("--no-report", action="store_true", help="Skip plots and report.html.")
    b.add_argument("--dry-run", action="store_true", help="Validate inputs and print planned outputs.")
    b.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "squiggleanchor quickstart (copy/paste):",
        "",
        "1) Try it on toy data:",
        "   squiggleanchor make-toy-data --outdir toy/",
        "   squiggleanchor build \\",
        "     --bam toy/reads.bam \\",
        "     --ref toy/toy_ref.fa \\",
        "     --read-map toy/reads.fast5map.tsv \\",
        "     --region chr1:1000-1100 --stride 50 \\",
        "     --outdir toy_out/",
        "",
        "2) Real data (2D reads aligned with e.g. bwa mem -x ont2d):",
        "   squiggleanchor build \\",
        "     --bam reads.sorted.bam \\",
        "     --ref ref.fa \\",
        "     --read-map reads.fast5map.tsv \\",
        "     --region chr20:10000-20000 \\",
        "     --threads 8 \\",
        "     --outdir results/",
        "   Outputs: results/region_input.json.gz, results/summary.json, results/report.html",
        "",
        "Tip: use --dry-run to validate inputs first.",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    summary = make_toy_data(outdir=outdir)
    print(json.dumps(summary, indent=2))
    return 0


def cmd_build(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    log_path = _log_path(outdir, "build.log")
    _setup_logging(args.verbose, logfile=None if args.dry_run else log_path)

    logger = logging.getLogger("squiggleanchor")
    logger.info("squiggleanchor %s", __version__)

    try:
        contig, start, end = parse_region(args.region)
        check_region_parameters(start, end, args.stride, args.kmer_size)
        check_bam_index(args.bam)
        check_fasta_index(args.ref)
        read_map = Fast5Map.from_tsv(args.read_map)

        if args.dry_run:
            print("Dry-run: inputs look OK.")
            print(f"Region: {contig}:{start}-{end} (stride {args.stride}, k {args.kmer_size})")
            print(f"Reads in map: {len(read_map)}")
            print("Planned outputs:")
            print(f"  region_input.json.gz -> {outdir / 'region_input.json.gz'}")
            print(f"  summary.json -> {outdir / 'summary.json'}")
            if not args.no_report:
                print(f"  report.html -> {outdir / 'report.html'}")
            return 0

        outdir = ensure_outdir(outdir)

        region = build_input_for_region(
            args.bam,
            args.ref,
            read_map,
            contig,
            start,
            end,
            args.stride,
            k=args.kmer_size,
            threads=args.threads,
            exclude_secondary=bool(args.exclude_secondary),
            exclude_supplementary=bool(args.exclude_supplementary),
            progress=True,
        )

        region_path = write_region_input(region, outdir / "region_input.json.gz")
        summary = region.summary()
        write_json(outdir / "summary.json", summary)

        if args.no_report:
            print(str(region_path))
            return 0

        plots_dir = outdir / "plots"
        coverage_png = plots_dir / "column_coverage.png"
        alts_png = plots_dir / "alt_counts.png"
        plot_column_coverage(summary=summary, out_png=coverage_png)
        plot_alt_counts(summary=summary, out_png=alts_png)

        report_path = render_report(
            outdir=outdir,
            version=__version__,
            summary=summary,
            inputs={"bam": str(args.bam), "ref": str(args.ref), "read_map": str(args.read_map)},
            plots={
                "column_coverage": str(Path("plots") / coverage_png.name),
                "alt_counts": str(Path("plots") / alts_png.name),
            },
        )

        logger.info("Report written: %s", report_path)
        print(str(region_path))
        return 0
    except Exception as e:
        return _handle_error(e, log_path=None if args.dry_run else log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "build":
        return cmd_build(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
