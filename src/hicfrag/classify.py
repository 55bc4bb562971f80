"""
Read-pair classification against restriction fragments.

A pair is first put in canonical order (upstream read first), then its strand
pattern and fragment relationship decide the category:

  same fragment, RF        -> dangling end
  same fragment, FR        -> self circle
  same fragment, FF / RR   -> filtered
  adjacent fragments       -> religation
  anything else            -> valid interaction (sub-typed by strand pattern)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .exceptions import HicFragError, MissingAlignmentData, UnorderablePair
from .hicfragClasses import (
    AlignedRead,
    Category,
    ClassifiedPair,
    PositionPolicy,
    ResolvedLocus,
    RestrictionFragment,
    Strand,
    StrandPattern,
)
from .locus import resolve, resolve_locus, strand_of

_PATTERNS = {
    (Strand.FORWARD, Strand.FORWARD): StrandPattern.FF,
    (Strand.REVERSE, Strand.REVERSE): StrandPattern.RR,
    (Strand.FORWARD, Strand.REVERSE): StrandPattern.FR,
    (Strand.REVERSE, Strand.FORWARD): StrandPattern.RF,
}


@dataclass(frozen=True)
class OrderedPair:
    upstream: AlignedRead
    downstream: AlignedRead
    swapped: bool  # True when read2 of the input is upstream

    def fragments(self, frag1, frag2):
        """Reorder per-read values given in input order."""
        return (frag2, frag1) if self.swapped else (frag1, frag2)


def _order_key(read: AlignedRead):
    if read.is_unmapped:
        raise UnorderablePair(read.name, "read is unmapped")
    if read.chromosome_id is None:
        raise UnorderablePair(read.name, "no chromosome id")
    try:
        pos = resolve(read, PositionPolicy.MIDDLE)
    except MissingAlignmentData as e:
        raise UnorderablePair(read.name, str(e)) from e
    # Forward before reverse on a tie so the order never depends on input order
    return read.chromosome_id, pos, read.is_reverse_strand


def order_pair(read1: AlignedRead, read2: AlignedRead) -> OrderedPair:
    if _order_key(read1) <= _order_key(read2):
        return OrderedPair(read1, read2, swapped=False)
    return OrderedPair(read2, read1, swapped=True)


def strand_pattern(upstream: AlignedRead, downstream: AlignedRead) -> StrandPattern:
    return _PATTERNS[(strand_of(upstream), strand_of(downstream))]


def is_intra_chromosomal(read1: AlignedRead, read2: AlignedRead) -> bool:
    return read1.chromosome_id is not None and read1.chromosome_id == read2.chromosome_id


def are_adjacent(frag1: RestrictionFragment, frag2: RestrictionFragment) -> bool:
    if frag1.chromosome != frag2.chromosome:
        return False
    return frag1.end == frag2.start or frag2.end == frag1.start


def _decide(
    ordered: OrderedPair,
    pattern: StrandPattern,
    frag_up: Optional[RestrictionFragment],
    frag_down: Optional[RestrictionFragment],
) -> Category:
    if frag_up is None or frag_down is None:
        return Category.FILTERED

    cis = is_intra_chromosomal(ordered.upstream, ordered.downstream)
    if cis and frag_up == frag_down:
        if pattern is StrandPattern.RF:
            return Category.DANGLING_END
        if pattern is StrandPattern.FR:
            return Category.SELF_CIRCLE
        return Category.FILTERED
    if cis and frag_up != frag_down and are_adjacent(frag_up, frag_down):
        return Category.RELIGATION
    return Category.VALID_INTERACTION


def classify(
    read1: AlignedRead,
    read2: AlignedRead,
    frag1: Optional[RestrictionFragment],
    frag2: Optional[RestrictionFragment],
) -> Category:
    try:
        ordered = order_pair(read1, read2)
    except UnorderablePair:
        return Category.FILTERED
    frag_up, frag_down = ordered.fragments(frag1, frag2)
    return _decide(ordered, strand_pattern(ordered.upstream, ordered.downstream), frag_up, frag_down)


def _sub(a: int, b: int) -> int:
    return a - b if a > b else 0


def _distance_to_cut(locus: ResolvedLocus, frag: RestrictionFragment) -> int:
    # distance to the fragment boundary the read points at
    if locus.strand is Strand.FORWARD:
        return _sub(frag.end, locus.position)
    return _sub(locus.position, frag.start)


def measure(
    up: ResolvedLocus,
    down: ResolvedLocus,
    frag_up: Optional[RestrictionFragment],
    frag_down: Optional[RestrictionFragment],
    category: Category,
) -> Optional[int]:
    """Category-specific size in bp; never negative."""
    if category in (Category.DANGLING_END, Category.RELIGATION):
        return _sub(down.position, up.position)
    if frag_up is None or frag_down is None:
        return None
    if category is Category.SELF_CIRCLE:
        return _sub(up.position, frag_up.start) + _sub(frag_down.end, down.position)
    if category is Category.VALID_INTERACTION:
        return _distance_to_cut(up, frag_up) + _distance_to_cut(down, frag_down)
    return None


def cis_distance(read1: AlignedRead, read2: AlignedRead) -> Optional[int]:
    """|pos1 - pos2| of midpoints for a cis pair, None for trans or unresolvable pairs."""
    if read1.is_unmapped or read2.is_unmapped or not is_intra_chromosomal(read1, read2):
        return None
    try:
        return abs(resolve(read1, PositionPolicy.MIDDLE) - resolve(read2, PositionPolicy.MIDDLE))
    except MissingAlignmentData:
        return None


def classify_pair(
    read1: AlignedRead,
    read2: AlignedRead,
    frag1: Optional[RestrictionFragment],
    frag2: Optional[RestrictionFragment],
    *,
    policy: PositionPolicy = PositionPolicy.MIDDLE,
    logger: logging.Logger | None = None,
) -> ClassifiedPair:
    """Classify one pair and compute its size; errors end up as FILTERED, never raised."""
    try:
        ordered = order_pair(read1, read2)
        up = resolve_locus(ordered.upstream, policy)
        down = resolve_locus(ordered.downstream, policy)
    except HicFragError as e:
        if logger:
            logger.warning(f"{e} - pair filtered")
        return ClassifiedPair(Category.FILTERED, read1_fragment=frag1, read2_fragment=frag2)

    pattern = strand_pattern(ordered.upstream, ordered.downstream)
    frag_up, frag_down = ordered.fragments(frag1, frag2)
    category = _decide(ordered, pattern, frag_up, frag_down)

    return ClassifiedPair(
        category=category,
        size=measure(up, down, frag_up, frag_down, category),
        read1_fragment=frag1,
        read2_fragment=frag2,
        pattern=pattern,
        upstream=ordered.upstream,
        downstream=ordered.downstream,
        cis_distance=cis_distance(read1, read2),
        swapped=ordered.swapped,
    )
