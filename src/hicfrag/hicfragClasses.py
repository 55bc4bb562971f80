from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Strand(Enum):
    FORWARD = "+"
    REVERSE = "-"


class PositionPolicy(Enum):
    """Which coordinate of an alignment stands in for the whole read."""
    START = "start"    # 5' end relative to sequencing direction
    MIDDLE = "middle"  # alignment midpoint
    LEFT = "left"      # leftmost aligned base


class StrandPattern(Enum):
    FF = "FF"
    RR = "RR"
    FR = "FR"
    RF = "RF"


class Category(Enum):
    SELF_CIRCLE = "SC"
    DANGLING_END = "DE"
    RELIGATION = "RE"
    VALID_INTERACTION = "VI"
    FILTERED = "FILT"


# Restriction fragment / BED interval (0-based, end exclusive)
@dataclass(frozen=True, order=True)
class GenomicInterval:
    chromosome: str
    start: int
    end: int

    def __post_init__(self):
        if self.start < 0:
            raise ValueError(f"Negative start in interval {self.chromosome}:{self.start}-{self.end}")
        if self.start >= self.end:
            raise ValueError(f"Empty interval {self.chromosome}:{self.start}-{self.end} (start must be < end)")

    def __len__(self) -> int:
        return self.end - self.start

    def contains(self, point: int) -> bool:
        return self.start <= point < self.end

    def __str__(self) -> str:
        return f"{self.chromosome}:{self.start}-{self.end}"


RestrictionFragment = GenomicInterval


# Only the alignment fields needed to classify a pair
@dataclass(frozen=True)
class AlignedRead:
    """Read-only view of one aligned read.

    alignment_start is 1-based; chromosome_id is the BAM reference id and is
    only used for ordering, chromosome is the reference name used for
    fragment lookup.
    """
    __slots__ = ('name', 'chromosome_id', 'chromosome', 'alignment_start', 'alignment_span',
                 'is_unmapped', 'is_reverse_strand', 'is_first_segment', 'mapq')
    name: str
    chromosome_id: Optional[int]
    chromosome: Optional[str]
    alignment_start: Optional[int]
    alignment_span: Optional[int]
    is_unmapped: bool
    is_reverse_strand: bool
    is_first_segment: bool
    mapq: int


@dataclass(frozen=True)
class ResolvedLocus:
    position: int  # 0-based
    strand: Strand


@dataclass(frozen=True)
class ClassifiedPair:
    """Result for one read pair.

    read1_fragment / read2_fragment follow input order; upstream and
    downstream follow canonical order and are None when ordering failed.
    """
    category: Category
    size: Optional[int] = None
    read1_fragment: Optional[RestrictionFragment] = None
    read2_fragment: Optional[RestrictionFragment] = None
    pattern: Optional[StrandPattern] = None
    upstream: Optional[AlignedRead] = None
    downstream: Optional[AlignedRead] = None
    cis_distance: Optional[int] = None
    swapped: bool = False  # read2 of the input is upstream
