"""Tests for partition verification and coverage reporting."""

import json
from pathlib import Path

from boundsplit.chunking.capacity import ChunkCapacity
from boundsplit.chunking.splitter import Chunk, TextSplitter
from boundsplit.chunking.verify import (
    calculate_coverage,
    load_chunks,
    verify_chunks_file,
    verify_partition,
)

SOURCE = "First paragraph here.\n\nSecond paragraph is here."


def write_chunks(path: Path, chunks) -> Path:
    with open(path, "w", encoding="utf-8") as f:
        for ord_, chunk in enumerate(chunks):
            record = {"ord": ord_, "start": chunk.start, "end": chunk.end, "text": chunk.text}
            f.write(json.dumps(record) + "\n")
    return path


class TestCoverage:
    """Test coverage calculation."""

    def test_full_coverage(self):
        assert calculate_coverage([(0, 5), (5, 10)], 10) == (100.0, [])

    def test_gaps(self):
        coverage, gaps = calculate_coverage([(0, 5), (7, 10)], 10)

        assert coverage == 80.0
        assert gaps == [(5, 7)]

    def test_trailing_gap_and_overlap(self):
        coverage, gaps = calculate_coverage([(0, 6), (4, 8)], 10)

        assert coverage == 80.0
        assert gaps == [(8, 10)]

    def test_empty(self):
        assert calculate_coverage([], 0) == (100.0, [])
        assert calculate_coverage([], 4) == (0.0, [(0, 4)])


class TestVerifyPartition:
    """Test verification of chunk lists."""

    def test_splitter_output_passes(self):
        chunks = list(TextSplitter().chunk_spans(SOURCE, 30))
        report = verify_partition(SOURCE, chunks, ChunkCapacity(30))

        assert report["status"] == "PASS"
        assert report["chunks"] == 2
        assert report["coverage"]["coverage_pct"] == 100.0
        assert report["coverage"]["reassembles"] is True
        assert report["size_stats"]["max"] == 25

    def test_oversize_chunk_fails(self):
        chunks = [Chunk(0, len(SOURCE), SOURCE)]
        report = verify_partition(SOURCE, chunks, ChunkCapacity(30))

        assert report["status"] == "FAIL"
        assert report["violations"]["oversize"] == [
            {"ord": 0, "start": 0, "size": len(SOURCE)}
        ]

    def test_single_grapheme_may_exceed_max(self):
        text = "e\u0301"
        report = verify_partition(text, [Chunk(0, 2, text)], ChunkCapacity(1))

        assert report["status"] == "PASS"

    def test_mismatched_and_out_of_order(self):
        chunks = [Chunk(5, 10, "nope!"), Chunk(0, 5, SOURCE[:5])]
        report = verify_partition(SOURCE, chunks, ChunkCapacity(30))

        assert report["status"] == "FAIL"
        assert len(report["violations"]["mismatched_text"]) == 1
        assert report["violations"]["out_of_order"] == [{"ord": 1, "start": 0, "previous": 5}]

    def test_trimmed_output_needs_allow_trimmed(self):
        chunks = list(TextSplitter(trim=True).chunk_spans(SOURCE, 30))

        assert verify_partition(SOURCE, chunks, ChunkCapacity(30))["status"] == "FAIL"
        report = verify_partition(SOURCE, chunks, ChunkCapacity(30), lossless=False)
        assert report["status"] == "PASS"
        assert report["coverage"]["gaps_count"] == 1

    def test_below_min_is_counted(self):
        chunks = list(TextSplitter().chunk_spans(SOURCE, 30))
        report = verify_partition(SOURCE, chunks, ChunkCapacity(max=30, min=24))

        assert report["size_stats"]["below_min"] == 1
        assert report["status"] == "PASS"


class TestVerifyChunksFile:
    """Test file-based verification and report output."""

    def test_writes_reports(self, tmp_path):
        source = tmp_path / "source.txt"
        source.write_text(SOURCE, encoding="utf-8")
        chunks_file = write_chunks(
            tmp_path / "chunks.ndjson", TextSplitter().chunk_spans(SOURCE, 30)
        )

        report = verify_chunks_file(
            chunks_file, source, ChunkCapacity(30), out_dir=tmp_path / "verify"
        )

        assert report["status"] == "PASS"
        report_dir = Path(report["report_dir"])
        assert (report_dir / "report.json").exists()
        assert (report_dir / "report.md").exists()
        assert not (report_dir / "breaches.json").exists()
        saved = json.loads((report_dir / "report.json").read_text(encoding="utf-8"))
        assert saved["parameters"]["sizer"] == "Characters()"
        assert "PASS" in (report_dir / "report.md").read_text(encoding="utf-8")

    def test_breaches_written(self, tmp_path):
        source = tmp_path / "source.txt"
        source.write_text(SOURCE, encoding="utf-8")
        chunks_file = write_chunks(tmp_path / "chunks.ndjson", [Chunk(0, len(SOURCE), SOURCE)])

        report = verify_chunks_file(
            chunks_file, source, ChunkCapacity(10), out_dir=tmp_path / "verify"
        )

        assert report["status"] == "FAIL"
        breaches_file = Path(report["report_dir"]) / "breaches.json"
        breaches = json.loads(breaches_file.read_text(encoding="utf-8"))
        assert breaches[0]["size"] == len(SOURCE)

    def test_no_out_dir(self, tmp_path):
        source = tmp_path / "source.txt"
        source.write_text(SOURCE, encoding="utf-8")
        chunks_file = write_chunks(
            tmp_path / "chunks.ndjson", TextSplitter().chunk_spans(SOURCE, 30)
        )

        report = verify_chunks_file(chunks_file, source, ChunkCapacity(30))

        assert "report_dir" not in report
        assert report["status"] == "PASS"

    def test_load_chunks_skips_blank_lines(self, tmp_path):
        path = tmp_path / "chunks.ndjson"
        path.write_text('{"start": 0, "end": 2, "text": "ab"}\n\n{"start": 2, "text": "c"}\n')

        assert load_chunks(path) == [Chunk(0, 2, "ab"), Chunk(2, 3, "c")]
