from __future__ import annotations

from .exceptions import MissingAlignmentData
from .hicfragClasses import AlignedRead, PositionPolicy, ResolvedLocus, Strand


def _require(read: AlignedRead):
    if read.alignment_start is None:
        raise MissingAlignmentData(read.name, "alignment_start")
    if read.alignment_span is None:
        raise MissingAlignmentData(read.name, "alignment_span")
    return read.alignment_start - 1, read.alignment_span


def resolve(read: AlignedRead, policy: PositionPolicy = PositionPolicy.MIDDLE) -> int:
    """
    0-based representative position of a read.

    MIDDLE is used for fragment assignment: a read whose 5' end sits across a
    restriction site still lands on the fragment holding most of its bases.
    """
    left, span = _require(read)
    if policy is PositionPolicy.LEFT:
        return left
    if policy is PositionPolicy.MIDDLE:
        return left + span // 2
    if policy is PositionPolicy.START:
        if read.is_reverse_strand:
            return left + max(span - 1, 0)
        return left
    raise ValueError(f"Unknown position policy: {policy!r}")


def strand_of(read: AlignedRead) -> Strand:
    return Strand.REVERSE if read.is_reverse_strand else Strand.FORWARD


def resolve_locus(read: AlignedRead, policy: PositionPolicy = PositionPolicy.MIDDLE) -> ResolvedLocus:
    return ResolvedLocus(position=resolve(read, policy), strand=strand_of(read))
