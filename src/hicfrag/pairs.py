from __future__ import annotations

import glob
import logging
import os
import sys
import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, TextIO, Tuple

import bamnostic as bn
import psutil

from .assign import HitStatus, locate
from .bedtools import load_restriction_fragments
from .classify import classify_pair, order_pair
from .exceptions import HicFragError, MissingAlignmentData
from .fragindex import FragmentIndex
from .hicfragClasses import (
    AlignedRead,
    Category,
    ClassifiedPair,
    PositionPolicy,
    RestrictionFragment,
    StrandPattern,
)
from .locus import resolve, strand_of

# SAM flag bits, used when the record does not expose the named property
FLAG_UNMAPPED = 0x4
FLAG_REVERSE = 0x10
FLAG_READ1 = 0x40
FLAG_SECONDARY = 0x100
FLAG_SUPPLEMENTARY = 0x800

OUTPUT_SUFFIX = {
    Category.VALID_INTERACTION: "validPairs",
    Category.DANGLING_END: "DEPairs",
    Category.SELF_CIRCLE: "SCPairs",
    Category.RELIGATION: "REPairs",
    Category.FILTERED: "FiltPairs",
}


def _get_memory_usage():
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / 1024 / 1024  # Current memory usage in MB


def _make_logger(level: str) -> logging.Logger:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logger = logging.getLogger("hicfrag.pairs")
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("[%(asctime)s] [%(levelname)s] %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
    logger.setLevel(lvl)
    return logger


def _get_read_name(aln) -> str:
    for attr in ("query_name", "qname", "read_name"):
        v = getattr(aln, attr, None)
        if v:
            return v
    return ""


def _flag_set(aln, attr: str, bit: int) -> bool:
    v = getattr(aln, attr, None)
    if v is not None:
        return bool(v)
    return bool((getattr(aln, "flag", 0) or 0) & bit)


def _expand_bam_patterns(bams: List[str]) -> List[str]:
    seen = set()
    out: List[str] = []
    for pat in bams:
        matches = glob.glob(pat) if any(ch in pat for ch in "*?[]") else (
            [pat] if os.path.exists(pat) else []
        )
        for m in sorted(matches):
            if m not in seen:
                seen.add(m)
                out.append(m)
        if not matches:
            print(f"[WARNING] No BAMs matched: {pat}")
    return out


def _extract_aligned_read(aln) -> AlignedRead:
    """Copy the fields needed for classification out of a bamnostic record."""
    unmapped = _flag_set(aln, "is_unmapped", FLAG_UNMAPPED)

    tid = None
    for attr in ("reference_id", "refID", "tid"):
        v = getattr(aln, attr, None)
        if v is not None:
            tid = v
            break
    if tid is not None and tid < 0:
        tid = None

    start_1b = None
    span = None
    if not unmapped:
        pos = getattr(aln, "pos", None)  # bamnostic uses 0-based pos
        if pos is not None and pos >= 0:
            start_1b = pos + 1
            end = getattr(aln, "reference_end", None)
            if end is not None and end > pos:
                span = end - pos

    mapq = getattr(aln, "mapq", None)
    if mapq is None:
        mapq = getattr(aln, "mapping_quality", 0)

    return AlignedRead(
        name=_get_read_name(aln),
        chromosome_id=None if unmapped else tid,
        chromosome=None if unmapped else getattr(aln, "reference_name", None),
        alignment_start=start_1b,
        alignment_span=span,
        is_unmapped=unmapped,
        is_reverse_strand=_flag_set(aln, "is_reverse", FLAG_REVERSE),
        is_first_segment=_flag_set(aln, "is_read1", FLAG_READ1),
        mapq=mapq or 0,
    )


@dataclass
class PairStats:
    """Counters written to the .RSstat file."""
    pairs: int = 0
    categories: Dict[Category, int] = field(default_factory=lambda: {c: 0 for c in Category})
    patterns: Dict[StrandPattern, int] = field(default_factory=lambda: {p: 0 for p in StrandPattern})
    unmapped_pairs: int = 0
    low_mapq_pairs: int = 0
    unpaired_reads: int = 0
    unassigned: Dict[HitStatus, int] = field(default_factory=lambda: {
        HitStatus.NO_COVERAGE: 0, HitStatus.AMBIGUOUS: 0, HitStatus.UNKNOWN_CHROMOSOME: 0,
    })
    missing_alignment_data: int = 0

    def add(self, record: ClassifiedPair):
        self.pairs += 1
        self.categories[record.category] += 1
        if record.category is Category.VALID_INTERACTION and record.pattern is not None:
            self.patterns[record.pattern] += 1

    def lines(self) -> List[str]:
        out = ["## Hi-C read pair classification", f"Total_pairs_processed\t{self.pairs}"]
        labels = {
            Category.VALID_INTERACTION: "Valid_interaction_pairs",
            Category.DANGLING_END: "Dangling_end_pairs",
            Category.SELF_CIRCLE: "Self_Cycle_pairs",
            Category.RELIGATION: "Religation_pairs",
            Category.FILTERED: "Filtered_pairs",
        }
        for cat, label in labels.items():
            out.append(f"{label}\t{self.categories[cat]}")
        for pat in StrandPattern:
            out.append(f"Valid_interaction_pairs_{pat.value}\t{self.patterns[pat]}")
        out.append(f"Unmapped_pairs\t{self.unmapped_pairs}")
        out.append(f"Low_MAPQ_pairs\t{self.low_mapq_pairs}")
        out.append(f"Unpaired_reads\t{self.unpaired_reads}")
        out.append(f"Reads_no_fragment\t{self.unassigned[HitStatus.NO_COVERAGE]}")
        out.append(f"Reads_ambiguous_fragment\t{self.unassigned[HitStatus.AMBIGUOUS]}")
        out.append(f"Reads_unknown_chromosome\t{self.unassigned[HitStatus.UNKNOWN_CHROMOSOME]}")
        out.append(f"Reads_missing_alignment\t{self.missing_alignment_data}")
        return out

    def write(self, path: str | Path):
        with open(path, "w", encoding="utf-8") as fh:
            fh.write("\n".join(self.lines()) + "\n")


def iter_read_pairs(bam, stats: PairStats | None = None) -> Iterator[Tuple[AlignedRead, AlignedRead]]:
    """
    Yield (read1, read2) for every read name seen twice among primary alignments.

    Input does not need to be name-sorted; records are buffered by name until
    the mate shows up.
    """
    buckets: Dict[str, AlignedRead] = {}
    for aln in bam:
        if _flag_set(aln, "is_secondary", FLAG_SECONDARY) or \
                _flag_set(aln, "is_supplementary", FLAG_SUPPLEMENTARY):
            continue
        read = _extract_aligned_read(aln)
        mate = buckets.pop(read.name, None)
        if mate is None:
            buckets[read.name] = read
            continue
        if read.is_first_segment and not mate.is_first_segment:
            yield read, mate
        else:
            yield mate, read

    if stats is not None:
        stats.unpaired_reads += len(buckets)


def _fmt(v) -> str:
    return "NA" if v is None else str(v)


def _pos(read: AlignedRead, policy: PositionPolicy) -> Optional[int]:
    try:
        return resolve(read, policy)
    except MissingAlignmentData:
        return None


def format_pair(
    read1: AlignedRead,
    read2: AlignedRead,
    record: ClassifiedPair,
    policy: PositionPolicy = PositionPolicy.MIDDLE,
) -> str:
    swapped = record.swapped
    up, down = (read2, read1) if swapped else (read1, read2)
    frag_up, frag_down = (record.read2_fragment, record.read1_fragment) if swapped else \
        (record.read1_fragment, record.read2_fragment)

    cols = [
        up.name,
        _fmt(up.chromosome), _fmt(_pos(up, policy)), strand_of(up).value,
        _fmt(down.chromosome), _fmt(_pos(down, policy)), strand_of(down).value,
        _fmt(record.size),
        _fmt(frag_up), _fmt(frag_down),
        record.pattern.value if record.pattern is not None else "NA",
        "InterChrom" if record.cis_distance is None else str(record.cis_distance),
    ]
    return "\t".join(cols)


class PairClassifier:
    """Per-read assignment plus pair classification with capped diagnostics."""

    def __init__(
        self,
        index: FragmentIndex,
        *,
        policy: PositionPolicy = PositionPolicy.MIDDLE,
        min_mapq: int = 0,
        logger: logging.Logger | None = None,
        log_reads: int = 10,
    ):
        self.index = index
        self.policy = policy
        self.min_mapq = min_mapq
        self.logger = logger
        self.log_reads = log_reads
        self.stats = PairStats()
        self._logged = 0

    def _diag(self, msg: str):
        if not self.logger:
            return
        if self._logged < self.log_reads:
            self.logger.warning(msg)
            self._logged += 1
        else:
            self.logger.debug(msg)

    def _assign(self, read: AlignedRead) -> Optional[RestrictionFragment]:
        if read.is_unmapped:
            return None
        if read.chromosome is None:
            self.stats.unassigned[HitStatus.UNKNOWN_CHROMOSOME] += 1
            self._diag(f"no reference name for mapped read {read.name} - skipped")
            return None
        try:
            hit = locate(self.index, read.chromosome, read)
        except MissingAlignmentData as e:
            self.stats.missing_alignment_data += 1
            self._diag(f"{e} - skipped")
            return None
        if not hit.ok:
            self.stats.unassigned[hit.status] += 1
            self._diag(hit.reason())
        return hit.fragment

    def __call__(self, read1: AlignedRead, read2: AlignedRead) -> ClassifiedPair:
        if read1.is_unmapped or read2.is_unmapped:
            self.stats.unmapped_pairs += 1
            record = ClassifiedPair(Category.FILTERED)
        elif read1.mapq < self.min_mapq or read2.mapq < self.min_mapq:
            self.stats.low_mapq_pairs += 1
            record = ClassifiedPair(Category.FILTERED)
        else:
            frag1 = self._assign(read1)
            frag2 = self._assign(read2)
            try:
                order_pair(read1, read2)
            except HicFragError as e:
                self._diag(f"{e} - pair filtered")
            record = classify_pair(read1, read2, frag1, frag2, policy=self.policy)
        self.stats.add(record)
        return record


def _classify_one_bam(
    bam_path: str | Path,
    index: FragmentIndex,
    out_dir: Path,
    prefix: str,
    *,
    policy: PositionPolicy,
    min_mapq: int,
    all_pairs: bool,
    logger: logging.Logger | None = None,
    log_reads: int = 10,
) -> PairStats:
    if logger:
        logger.info(f"Classifying pairs in {bam_path}")
        if logger.isEnabledFor(logging.DEBUG):
            try:
                with bn.AlignmentFile(str(bam_path), "rb") as btmp:
                    refs = list(getattr(btmp, "references", []))
                    only_bam = sorted(set(refs) - set(index.chromosomes))
                    logger.debug(f"Contigs in BAM without fragments (first 20): {only_bam[:20]}")
            except Exception:
                pass

    classifier = PairClassifier(index, policy=policy, min_mapq=min_mapq, logger=logger, log_reads=log_reads)
    wanted = list(OUTPUT_SUFFIX) if all_pairs else [Category.VALID_INTERACTION]
    handles: Dict[Category, TextIO] = {}
    progress_every = 1000000
    try:
        for cat in wanted:
            handles[cat] = open(out_dir / f"{prefix}.{OUTPUT_SUFFIX[cat]}", "w", encoding="utf-8")

        with bn.AlignmentFile(str(bam_path), "rb") as bam:
            for read1, read2 in iter_read_pairs(bam, classifier.stats):
                record = classifier(read1, read2)
                fh = handles.get(record.category)
                if fh is not None:
                    fh.write(format_pair(read1, read2, record, policy) + "\n")

                if logger and classifier.stats.pairs % progress_every == 0:
                    logger.info(f"Processed {classifier.stats.pairs:,} pairs... "
                                f"(Memory: {_get_memory_usage():.1f} MB)")
    except Exception as e:
        if logger:
            logger.error(f"Error while classifying {bam_path} after {classifier.stats.pairs:,} pairs: {e}")
            logger.debug(traceback.format_exc())
        raise
    finally:
        for fh in handles.values():
            fh.close()

    stats = classifier.stats
    stats.write(out_dir / f"{prefix}.RSstat")
    if logger:
        logger.info(
            f"Done {bam_path}: pairs={stats.pairs}, "
            f"valid={stats.categories[Category.VALID_INTERACTION]}, "
            f"DE={stats.categories[Category.DANGLING_END]}, "
            f"SC={stats.categories[Category.SELF_CIRCLE]}, "
            f"RE={stats.categories[Category.RELIGATION]}, "
            f"filtered={stats.categories[Category.FILTERED]}"
        )
    return stats


def classify_pairs(
    bam_paths: List[str],
    bed_path: str | Path,
    out_dir: str | Path,
    *,
    prefix: str | None = None,
    position: str = "middle",
    min_frag_size: int | None = None,
    max_frag_size: int | None = None,
    min_mapq: int = 0,
    all_pairs: bool = False,
    log_level: str = "INFO",
    log_reads: int = 10,
) -> int:
    """
    Classify every read pair of each BAM against the restriction fragments in `bed_path`.

    Writes <prefix>.validPairs and <prefix>.RSstat per BAM into `out_dir`
    (plus DE/SC/RE/Filt files with `all_pairs`). Returns a process exit code.
    """
    logger = _make_logger(log_level)
    logger.debug(f"Python version: {sys.version}")
    logger.debug(f"Starting memory: {_get_memory_usage():.1f} MB")

    try:
        policy = PositionPolicy(position.lower())
    except ValueError:
        logger.error("--position must be one of: middle, start, left")
        return 2

    bam_list = _expand_bam_patterns(bam_paths)
    if not bam_list:
        logger.error("No BAMs found.")
        return 2
    if prefix and len(bam_list) > 1:
        logger.error("--prefix can only be used with a single BAM")
        return 2
    prefixes = [prefix or Path(b).stem for b in bam_list]
    clashes = sorted({p for p in prefixes if prefixes.count(p) > 1})
    if clashes:
        logger.error(f"BAMs share an output prefix (outputs would overwrite each other): {', '.join(clashes)}")
        return 2

    fragments = load_restriction_fragments(bed_path, min_frag_size, max_frag_size, logger=logger)
    index = FragmentIndex.build(fragments, logger=logger)
    if len(index) == 0:
        logger.warning(f"No restriction fragments loaded from {bed_path}; every pair will be filtered")

    outp = Path(out_dir)
    outp.mkdir(parents=True, exist_ok=True)

    for bamf, (b, bam_prefix) in enumerate(zip(bam_list, prefixes), 1):
        logger.info(f"Processing BAM {bamf}/{len(bam_list)}: {b}")
        try:
            _classify_one_bam(
                b, index, outp, bam_prefix,
                policy=policy,
                min_mapq=min_mapq,
                all_pairs=all_pairs,
                logger=logger,
                log_reads=log_reads,
            )
        except Exception as e:
            logger.error(f"{b}: {e}")
            return 1
        logger.info(f"Current memory: {_get_memory_usage():.1f} MB")

    return 0
