import argparse

from .pairs import classify_pairs
from .viewer import view_pairs_head


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Preview the first classified pairs
    if args.cmd in ["head", "view"]:
        return view_pairs_head(args.bams, args.fragments, n=args.num, position=args.position)

    # Classify all pairs and write per-category outputs
    elif args.cmd == "classify":
        if args.min_frag_size is not None and args.max_frag_size is not None \
                and args.min_frag_size > args.max_frag_size:
            print("[ERROR] --min-frag-size is larger than --max-frag-size")
            return 2
        try:
            return classify_pairs(
                bam_paths=args.bams,
                bed_path=args.fragments,
                out_dir=args.out_dir,
                prefix=args.prefix,
                position=args.position,
                min_frag_size=args.min_frag_size,
                max_frag_size=args.max_frag_size,
                min_mapq=args.min_mapq,
                all_pairs=args.all_pairs,
                log_level=args.log_level,
                log_reads=args.log_reads,
            )
        except OSError as e:
            print(f"[ERROR] {e}")
            return 1
    else:
        parser.error("Unknown command")

    return 2


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="hicfrag",
        description="Classify Hi-C read pairs by restriction fragment."
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # Quick look at a few pairs
    t = sub.add_parser(
        "head",
        aliases=["view"],
        help="Print the first N classified read pairs from each BAM file."
    )
    t.add_argument(
        "bams",
        nargs="+",
        help="One or more BAM files or glob patterns."
    )
    t.add_argument(
        "-f", "--fragments",
        required=True,
        help="Restriction fragments in BED format (.bed or .bed.gz)."
    )
    t.add_argument(
        "-n", "--num",
        type=int,
        default=10,
        help="Number of pairs per BAM."
    )
    t.add_argument(
        "--position",
        choices=["middle", "start", "left"],
        default="middle",
        help="Read position reported and used for pair sizes (default: middle)."
    )

    c = sub.add_parser(
        "classify",
        help="Classify all read pairs into valid interactions, dangling ends, self circles and religations."
    )
    c.add_argument(
        "bams",
        nargs="+",
        help="One or more BAM files or glob patterns (paired-end Hi-C alignments)."
    )
    c.add_argument(
        "-f", "--fragments",
        required=True,
        help="Restriction fragments in BED format (.bed or .bed.gz)."
    )
    c.add_argument(
        "-o", "--out-dir",
        dest="out_dir",
        required=True,
        help="Output directory."
    )
    c.add_argument(
        "--prefix",
        default=None,
        help="Output file prefix (default: BAM file stem; single BAM only)."
    )
    c.add_argument(
        "--position",
        choices=["middle", "start", "left"],
        default="middle",
        help="Read position used for pair sizes and output coordinates. "
             "Fragment assignment always uses the read middle (default: middle)."
    )
    c.add_argument(
        "--min-frag-size",
        type=int,
        default=None,
        help="Discard restriction fragments shorter than this."
    )
    c.add_argument(
        "--max-frag-size",
        type=int,
        default=None,
        help="Discard restriction fragments longer than this."
    )
    c.add_argument(
        "--min-mapq",
        type=int,
        default=0,
        help="Filter pairs where either read has MAPQ below this (default 0)."
    )
    c.add_argument(
        "--all-pairs",
        action="store_true",
        help="Also write dangling-end, self-circle, religation and filtered pairs to their own files."
    )
    # Debugging assistance
    c.add_argument(
        "--log-level",
        default="INFO",
        choices=["ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging verbosity (default: INFO)."
    )
    c.add_argument(
        "--log-reads",
        type=int,
        default=10,
        help="Report the first N unassignable reads as warnings, the rest at DEBUG (default: 10)."
    )
    return p

if __name__ == "__main__":
    raise SystemExit(main())
