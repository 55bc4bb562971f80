from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from bx.intervals.intersection import Intersecter, Interval

from .hicfragClasses import RestrictionFragment


class FragmentIndex:
    """
    Per-chromosome interval trees over restriction fragments.

    Built once by `build`; afterwards it is only read, so one index can be
    shared by any number of readers.
    """

    def __init__(self, trees: Dict[str, Intersecter], counts: Dict[str, int]):
        self._trees = trees
        self._counts = counts

    @classmethod
    def build(
        cls,
        fragments: Iterable[RestrictionFragment],
        logger: logging.Logger | None = None,
    ) -> "FragmentIndex":
        by_chrom: Dict[str, set] = {}
        n_in = 0
        for frag in fragments:
            n_in += 1
            by_chrom.setdefault(frag.chromosome, set()).add(frag)

        trees: Dict[str, Intersecter] = {}
        counts: Dict[str, int] = {}
        for chrom, frags in by_chrom.items():
            tree = Intersecter()
            # Sorted insertion keeps the tree layout reproducible
            for frag in sorted(frags):
                tree.add_interval(Interval(frag.start, frag.end, value=frag))
            trees[chrom] = tree
            counts[chrom] = len(frags)

        if logger:
            n_unique = sum(counts.values())
            logger.info(f"Fragment index built: {n_unique} fragments on {len(trees)} chromosomes")
            if n_unique < n_in:
                logger.debug(f"Collapsed {n_in - n_unique} duplicate fragment definitions")
            if logger.isEnabledFor(logging.DEBUG):
                for chrom in sorted(counts):
                    logger.debug(f"  chr={chrom!r}: {counts[chrom]} fragments")

        return cls(trees, counts)

    def query(self, chromosome: str, point: int) -> List[RestrictionFragment]:
        """All fragments on `chromosome` whose [start, end) contains `point`."""
        tree = self._trees.get(chromosome)
        if tree is None:
            return []
        return sorted(iv.value for iv in tree.find(point, point + 1))

    def has_chromosome(self, chromosome: str) -> bool:
        return chromosome in self._trees

    @property
    def chromosomes(self) -> List[str]:
        return sorted(self._trees)

    def fragment_count(self, chromosome: str | None = None) -> int:
        if chromosome is None:
            return sum(self._counts.values())
        return self._counts.get(chromosome, 0)

    def __len__(self) -> int:
        return self.fragment_count()

    def __contains__(self, chromosome: str) -> bool:
        return self.has_chromosome(chromosome)
