from __future__ import annotations

from pathlib import Path

import bamnostic as bn

from .bedtools import load_restriction_fragments
from .fragindex import FragmentIndex
from .hicfragClasses import PositionPolicy
from .pairs import PairClassifier, _expand_bam_patterns, format_pair, iter_read_pairs


def view_pairs_head(
        bams: list[str],
        bed_path: str | Path,
        n: int = 10,
        position: str = "middle",
) -> int:
    """
    Print the first N classified read pairs from each BAM file.
    Supports wildcards like *.bam on Windows.

    Output is TSV: category followed by the same columns as the .validPairs files.
    """
    bam_paths = _expand_bam_patterns(bams)
    if not bam_paths:
        print("[ERROR] No BAM files found.")
        return 1

    try:
        policy = PositionPolicy(position.lower())
        index = FragmentIndex.build(load_restriction_fragments(bed_path))
    except (OSError, ValueError) as e:
        print(f"[ERROR] {e}")
        return 2

    for bam in bam_paths:
        try:
            bf = bn.AlignmentFile(bam, "rb")
        except Exception as e:
            print(f"[ERROR] Could not open {bam}: {e}")
            return 1

        print(f"== {bam} ==")

        try:
            # quiet classifier: diagnostics are not wanted in a preview
            classifier = PairClassifier(index, policy=policy)
            printed = 0
            for read1, read2 in iter_read_pairs(bf):
                record = classifier(read1, read2)
                print(f"{record.category.value}\t{format_pair(read1, read2, record, policy)}")
                printed += 1
                if printed >= n:
                    break

            if printed == 0:
                print("[info] No read pairs found.")
        finally:
            bf.close()

    return 0
