import pytest

from hicfrag.hicfragClasses import AlignedRead, RestrictionFragment


def make_read(
    name="r",
    middle=None,
    *,
    chrom="chr1",
    tid=0,
    start_1b=None,
    span=20,
    reverse=False,
    first=True,
    unmapped=False,
    mapq=60,
):
    """AlignedRead whose MIDDLE position is `middle` (0-based) unless start_1b is given."""
    if start_1b is None and middle is not None and span is not None:
        start_1b = middle - span // 2 + 1
    return AlignedRead(
        name=name,
        chromosome_id=None if unmapped else tid,
        chromosome=None if unmapped else chrom,
        alignment_start=None if unmapped else start_1b,
        alignment_span=None if unmapped else span,
        is_unmapped=unmapped,
        is_reverse_strand=reverse,
        is_first_segment=first,
        mapq=mapq,
    )


class FakeAln:
    """Just enough of a bamnostic AlignedSegment."""

    def __init__(self, name, chrom=None, tid=-1, pos=-1, span=None, *, reverse=False, read1=True,
                 unmapped=False, secondary=False, supplementary=False, mapq=60):
        self.query_name = name
        self.reference_name = chrom
        self.reference_id = tid
        self.pos = pos
        self.reference_end = pos + span if span is not None else None
        self.is_reverse = reverse
        self.is_read1 = read1
        self.is_unmapped = unmapped
        self.is_secondary = secondary
        self.is_supplementary = supplementary
        self.mapq = mapq


class FakeBam:
    def __init__(self, records, references=("chr1", "chr2")):
        self._records = list(records)
        self.references = list(references)

    def __iter__(self):
        return iter(self._records)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False

    def close(self):
        pass


@pytest.fixture
def two_chrom_fragments():
    return [
        RestrictionFragment("chr1", 0, 100),
        RestrictionFragment("chr1", 100, 250),
        RestrictionFragment("chr1", 250, 500),
        RestrictionFragment("chr1", 500, 900),
        RestrictionFragment("chr1", 1000, 1500),
        RestrictionFragment("chr2", 0, 300),
        RestrictionFragment("chr2", 300, 800),
    ]
