from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .exceptions import AmbiguousFragmentAssignment, MissingAlignmentData, NoFragmentCoverage
from .fragindex import FragmentIndex
from .hicfragClasses import AlignedRead, PositionPolicy, RestrictionFragment
from .locus import resolve


class HitStatus(Enum):
    ASSIGNED = "assigned"
    AMBIGUOUS = "ambiguous"
    NO_COVERAGE = "no_coverage"
    UNKNOWN_CHROMOSOME = "unknown_chromosome"


@dataclass(frozen=True)
class FragmentHit:
    """Outcome of placing one read on the fragment index."""
    status: HitStatus
    read_name: str
    chromosome: Optional[str]
    position: Optional[int]
    fragment: Optional[RestrictionFragment] = None
    n_overlaps: int = 0

    @property
    def ok(self) -> bool:
        return self.status is HitStatus.ASSIGNED

    def reason(self) -> str:
        if self.status is HitStatus.AMBIGUOUS:
            return (f"{self.n_overlaps} restriction fragments found for {self.read_name} "
                    f"at {self.chromosome}:{self.position} (overlapping fragment definitions) - skipped")
        if self.status is HitStatus.NO_COVERAGE:
            return f"no restriction fragment covers {self.read_name} at {self.chromosome}:{self.position} - skipped"
        if self.status is HitStatus.UNKNOWN_CHROMOSOME:
            return f"no restriction fragments on {self.chromosome!r} for {self.read_name} - skipped"
        return f"{self.read_name} -> {self.fragment}"

    def raise_for_status(self) -> RestrictionFragment:
        if self.status is HitStatus.AMBIGUOUS:
            raise AmbiguousFragmentAssignment(self.read_name, self.chromosome, self.position, self.n_overlaps)
        if self.status is not HitStatus.ASSIGNED:
            raise NoFragmentCoverage(self.read_name, self.chromosome, self.position)
        return self.fragment


def locate(index: FragmentIndex, chromosome: str, read: AlignedRead) -> FragmentHit:
    """
    Find the single fragment covering the read's midpoint.

    Raises MissingAlignmentData if the read has no alignment coordinates.
    """
    pos = resolve(read, PositionPolicy.MIDDLE)
    if not index.has_chromosome(chromosome):
        return FragmentHit(HitStatus.UNKNOWN_CHROMOSOME, read.name, chromosome, pos)

    found = index.query(chromosome, pos)
    if len(found) == 1:
        return FragmentHit(HitStatus.ASSIGNED, read.name, chromosome, pos, fragment=found[0], n_overlaps=1)
    if len(found) > 1:
        return FragmentHit(HitStatus.AMBIGUOUS, read.name, chromosome, pos, n_overlaps=len(found))
    return FragmentHit(HitStatus.NO_COVERAGE, read.name, chromosome, pos)


def assign(
    index: FragmentIndex,
    chromosome: str,
    read: AlignedRead,
    logger: logging.Logger | None = None,
) -> Optional[RestrictionFragment]:
    """Fragment of the read, or None (with a warning on `logger`) when there is not exactly one."""
    try:
        hit = locate(index, chromosome, read)
    except MissingAlignmentData as e:
        if logger:
            logger.warning(f"{e} - skipped")
        return None

    if not hit.ok and logger:
        logger.warning(hit.reason())
    return hit.fragment
