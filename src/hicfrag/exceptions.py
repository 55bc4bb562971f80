"""Errors raised inside the pair classification core.

None of these is fatal: every one of them turns the affected pair into a
filtered pair.
"""

from __future__ import annotations


class HicFragError(Exception):
    """Base class for hicfrag errors."""


class MissingAlignmentData(HicFragError):
    """A read lacks the alignment start or span needed to place it."""

    def __init__(self, read_name: str, field: str):
        self.read_name = read_name
        self.field = field
        super().__init__(f"{read_name}: missing {field}")


class AmbiguousFragmentAssignment(HicFragError):
    """More than one restriction fragment covers a read's locus."""

    def __init__(self, read_name: str, chromosome: str, position: int, count: int):
        self.read_name = read_name
        self.chromosome = chromosome
        self.position = position
        self.count = count
        super().__init__(
            f"{count} restriction fragments found for {read_name} at {chromosome}:{position} "
            f"(overlapping fragment definitions)"
        )


class NoFragmentCoverage(HicFragError):
    """No restriction fragment covers a read's locus."""

    def __init__(self, read_name: str, chromosome: str | None, position: int | None):
        self.read_name = read_name
        self.chromosome = chromosome
        self.position = position
        super().__init__(f"no restriction fragment for {read_name} at {chromosome}:{position}")


class UnorderablePair(HicFragError):
    """Canonical order of a pair cannot be established."""

    def __init__(self, read_name: str, reason: str):
        self.read_name = read_name
        self.reason = reason
        super().__init__(f"{read_name}: cannot order pair ({reason})")
