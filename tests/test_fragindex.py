import random

from hicfrag.fragindex import FragmentIndex
from hicfrag.hicfragClasses import RestrictionFragment


def test_query_returns_covering_fragment(two_chrom_fragments):
    index = FragmentIndex.build(two_chrom_fragments)
    assert index.query("chr1", 40) == [RestrictionFragment("chr1", 0, 100)]
    assert index.query("chr1", 100) == [RestrictionFragment("chr1", 100, 250)]
    assert index.query("chr1", 99) == [RestrictionFragment("chr1", 0, 100)]
    assert index.query("chr2", 799) == [RestrictionFragment("chr2", 300, 800)]


def test_query_gap_and_unknown_chromosome(two_chrom_fragments):
    index = FragmentIndex.build(two_chrom_fragments)
    # chr1 has a gap between 900 and 1000
    assert index.query("chr1", 950) == []
    assert index.query("chr1", 1500) == []
    assert index.query("chrX", 10) == []
    assert not index.has_chromosome("chrX")
    assert "chr2" in index


def test_build_collapses_duplicates_and_accepts_empty():
    frag = RestrictionFragment("chr1", 10, 20)
    index = FragmentIndex.build([frag, RestrictionFragment("chr1", 10, 20)])
    assert index.fragment_count("chr1") == 1
    assert index.query("chr1", 15) == [frag]

    empty = FragmentIndex.build([])
    assert len(empty) == 0
    assert empty.query("chr1", 0) == []


def test_overlapping_definitions_are_all_returned():
    a = RestrictionFragment("chr1", 0, 120)
    b = RestrictionFragment("chr1", 100, 250)
    index = FragmentIndex.build([b, a])
    assert index.query("chr1", 110) == [a, b]


def test_query_sound_and_complete_against_brute_force():
    rng = random.Random(7)
    frags = []
    for _ in range(300):
        chrom = rng.choice(["chr1", "chr2", "chr3"])
        start = rng.randrange(0, 5000)
        frags.append(RestrictionFragment(chrom, start, start + rng.randrange(1, 400)))
    index = FragmentIndex.build(frags)

    for _ in range(500):
        chrom = rng.choice(["chr1", "chr2", "chr3"])
        point = rng.randrange(0, 5500)
        expected = sorted({f for f in frags if f.chromosome == chrom and f.contains(point)})
        assert index.query(chrom, point) == expected
