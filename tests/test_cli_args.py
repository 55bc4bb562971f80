import pytest

from hicfrag import cli


def test_classify_argument_parsing(monkeypatch):
    captured = {}

    def fake_classify_pairs(**kwargs):
        captured.update(kwargs)
        return 0

    monkeypatch.setattr(cli, "classify_pairs", fake_classify_pairs)
    argv = [
        "classify", "alignments/sample.bam",
        "--fragments", "data/HindIII.bed",
        "--out-dir", "results",
        "--position", "start",
        "--min-frag-size", "100",
        "--min-mapq", "10",
        "--all-pairs",
    ]
    assert cli.main(argv) == 0
    assert captured["bam_paths"] == ["alignments/sample.bam"]
    assert captured["bed_path"] == "data/HindIII.bed"
    assert captured["position"] == "start"
    assert captured["min_frag_size"] == 100
    assert captured["max_frag_size"] is None
    assert captured["min_mapq"] == 10
    assert captured["all_pairs"] is True
    assert captured["log_level"] == "INFO"


def test_frag_size_range_checked(monkeypatch):
    monkeypatch.setattr(cli, "classify_pairs", lambda **kw: 0)
    argv = ["classify", "a.bam", "-f", "f.bed", "-o", "out", "--min-frag-size", "500", "--max-frag-size", "10"]
    assert cli.main(argv) == 2


def test_head_dispatch(monkeypatch):
    called = {}
    monkeypatch.setattr(cli, "view_pairs_head", lambda bams, bed, n, position: called.update(
        bams=bams, bed=bed, n=n, position=position) or 0)
    assert cli.main(["head", "x.bam", "-f", "f.bed", "-n", "3"]) == 0
    assert called == {"bams": ["x.bam"], "bed": "f.bed", "n": 3, "position": "middle"}


def test_unknown_position_rejected():
    with pytest.raises(SystemExit):
        cli.main(["classify", "a.bam", "-f", "f.bed", "-o", "out", "--position", "edge"])


def test_view_is_alias_of_head(monkeypatch):
    called = {}
    monkeypatch.setattr(cli, "view_pairs_head", lambda bams, bed, n, position: called.update(bams=bams) or 0)
    assert cli.main(["view", "y.bam", "-f", "f.bed"]) == 0
    assert called == {"bams": ["y.bam"]}
