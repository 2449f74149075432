"""
Partition verification: coverage, ordering and size-cap checks.
"""

import json
import statistics
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..core.logging import get_logger
from .boundaries import GRAPHEME_RE
from .capacity import ChunkCapacity
from .sizers import Characters, ChunkSizer
from .splitter import Chunk

log = get_logger(__name__)


def calculate_coverage(
    spans: Iterable[Tuple[int, int]], original_text_length: int
) -> Tuple[float, List[Tuple[int, int]]]:
    """
    Calculate text coverage from chunk spans and identify gaps.

    Args:
        spans: ``(start, end)`` offsets of each chunk
        original_text_length: Length of the original document text

    Returns:
        Tuple of (coverage_percentage, list_of_gaps)
        where gaps are (start, end) tuples of uncovered ranges
    """
    if original_text_length == 0:
        return 100.0, []

    covered_ranges = sorted((start, end) for start, end in spans if start < end)
    if not covered_ranges:
        return 0.0, [(0, original_text_length)]

    # Merge overlapping or adjacent ranges
    merged_ranges = []
    current_start, current_end = covered_ranges[0]
    for start, end in covered_ranges[1:]:
        if start <= current_end:
            current_end = max(current_end, end)
        else:
            merged_ranges.append((current_start, current_end))
            current_start, current_end = start, end
    merged_ranges.append((current_start, current_end))

    gaps = []
    position = 0
    covered = 0
    for start, end in merged_ranges:
        start, end = max(start, 0), min(end, original_text_length)
        if start > position:
            gaps.append((position, start))
        if end > start:
            covered += end - start
        position = max(position, end)
    if position < original_text_length:
        gaps.append((position, original_text_length))

    return (covered / original_text_length) * 100, gaps


def _is_single_grapheme(text: str) -> bool:
    match = GRAPHEME_RE.match(text)
    return match is not None and match.end() == len(text)


def verify_partition(
    source: str,
    chunks: Sequence[Chunk],
    capacity: ChunkCapacity,
    sizer: Optional[ChunkSizer] = None,
    lossless: bool = True,
) -> Dict:
    """
    Check chunks against the source they were split from.

    Args:
        source: Original text
        chunks: Chunks in emitted order
        capacity: Capacity the chunks were split with
        sizer: Sizer the chunks were measured with (default: characters)
        lossless: Require chunks to cover the source exactly (untrimmed output)

    Returns:
        Report dictionary with ``status`` PASS or FAIL
    """
    sizer = sizer or Characters()
    oversize = []
    mismatched = []
    out_of_order = []
    sizes = []

    previous_start = -1
    for ord_, chunk in enumerate(chunks):
        if source[chunk.start : chunk.end] != chunk.text:
            mismatched.append({"ord": ord_, "start": chunk.start, "end": chunk.end})
        if chunk.start <= previous_start:
            out_of_order.append({"ord": ord_, "start": chunk.start, "previous": previous_start})
        previous_start = chunk.start

        size = sizer.chunk_size(chunk.text, capacity).size
        sizes.append(size)
        if size > capacity.max and not _is_single_grapheme(chunk.text):
            oversize.append({"ord": ord_, "start": chunk.start, "size": size})

    coverage_pct, gaps = calculate_coverage(
        ((chunk.start, chunk.end) for chunk in chunks), len(source)
    )
    overlaps = [
        {"ord": i + 1, "start": nxt.start, "previous_end": cur.end}
        for i, (cur, nxt) in enumerate(zip(chunks, chunks[1:]))
        if nxt.start < cur.end
    ]
    reassembled = "".join(chunk.text for chunk in chunks) == source

    failed = bool(oversize or mismatched or out_of_order or overlaps)
    if lossless:
        failed = failed or bool(gaps) or not reassembled

    report = {
        "chunks": len(chunks),
        "source_length": len(source),
        "capacity": {"max": capacity.max, "min": capacity.min},
        "size_stats": {
            "min": min(sizes) if sizes else 0,
            "median": int(statistics.median(sizes)) if sizes else 0,
            "mean": int(statistics.mean(sizes)) if sizes else 0,
            "max": max(sizes) if sizes else 0,
            "below_min": sum(1 for size in sizes if not capacity.satisfies_min(size)),
        },
        "coverage": {
            "coverage_pct": coverage_pct,
            "gaps": gaps[:10],
            "gaps_count": len(gaps),
            "reassembles": reassembled,
        },
        "violations": {
            "oversize": oversize,
            "mismatched_text": mismatched,
            "out_of_order": out_of_order,
            "overlaps": overlaps,
        },
        "lossless_required": lossless,
        "status": "FAIL" if failed else "PASS",
    }
    return report


def read_source(path: Path) -> str:
    """Read a document exactly as stored; line endings are not translated."""
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def load_chunks(chunks_file: Path) -> List[Chunk]:
    """Load chunks from an ndjson file with ``start``, ``end`` and ``text`` fields."""
    chunks = []
    with open(chunks_file, "r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            record = json.loads(line)
            text = record.get("text", "")
            start = int(record.get("start", 0))
            end = int(record.get("end", start + len(text)))
            chunks.append(Chunk(start, end, text))
    return chunks


def verify_chunks_file(
    chunks_file: Path,
    source_file: Path,
    capacity: ChunkCapacity,
    sizer: Optional[ChunkSizer] = None,
    lossless: bool = True,
    out_dir: Optional[Path] = None,
) -> Dict:
    """
    Verify an ndjson chunk file against its source and write reports.

    Writes ``report.json`` and ``report.md`` (plus ``breaches.json`` and
    ``gaps.json`` when there are violations) into a timestamped directory
    under ``out_dir``.
    """
    source = read_source(Path(source_file))
    chunks = load_chunks(Path(chunks_file))
    report = verify_partition(source, chunks, capacity, sizer=sizer, lossless=lossless)

    timestamp = datetime.now(timezone.utc)
    report = {
        "timestamp": timestamp.isoformat(),
        "parameters": {
            "chunks_file": str(chunks_file),
            "source_file": str(source_file),
            "sizer": repr(sizer or Characters()),
        },
        **report,
    }

    if out_dir is not None:
        verify_dir = Path(out_dir) / timestamp.strftime("%Y%m%d_%H%M%S")
        verify_dir.mkdir(parents=True, exist_ok=True)
        _write_reports(verify_dir, report)
        report["report_dir"] = str(verify_dir)

    log.info(
        "verify.complete",
        status=report["status"],
        chunks=report["chunks"],
        coverage_pct=round(report["coverage"]["coverage_pct"], 2),
        oversize=len(report["violations"]["oversize"]),
    )
    return report


def _write_reports(verify_dir: Path, report: Dict) -> None:
    violations = report["violations"]
    if violations["oversize"]:
        with open(verify_dir / "breaches.json", "w", encoding="utf-8") as f:
            json.dump(violations["oversize"], f, indent=2)
    if report["coverage"]["gaps"]:
        with open(verify_dir / "gaps.json", "w", encoding="utf-8") as f:
            json.dump(report["coverage"]["gaps"], f, indent=2)

    with open(verify_dir / "report.json", "w", encoding="utf-8") as f:
        json.dump(report, f, indent=2)

    stats = report["size_stats"]
    coverage = report["coverage"]
    md_lines = [
        "# Chunk Verification Report",
        "",
        f"**Generated:** {report['timestamp']}",
        f"**Source:** {report['parameters']['source_file']}",
        f"**Total Chunks:** {report['chunks']}",
        f"**Max Size:** {report['capacity']['max']}",
        f"**Min Size:** {report['capacity']['min']}",
        "",
        "## Size Statistics",
        "",
        f"- **Min:** {stats['min']}",
        f"- **Median:** {stats['median']}",
        f"- **Mean:** {stats['mean']}",
        f"- **Max:** {stats['max']}",
        f"- **Below minimum:** {stats['below_min']}",
        "",
        "## Coverage",
        "",
        f"- **Coverage:** {coverage['coverage_pct']:.1f}%",
        f"- **Gaps:** {coverage['gaps_count']}",
        f"- **Reassembles to source:** {coverage['reassembles']}",
        "",
        "## Violations",
        "",
        f"- **Oversize chunks:** {len(violations['oversize'])}",
        f"- **Text mismatches:** {len(violations['mismatched_text'])}",
        f"- **Out-of-order offsets:** {len(violations['out_of_order'])}",
        f"- **Overlaps:** {len(violations['overlaps'])}",
        "",
        f"**Overall Status:** {'✅ PASS' if report['status'] == 'PASS' else '❌ FAIL'}",
    ]

    if violations["oversize"]:
        md_lines.extend(["", "### Oversize Chunks (Top 10)", ""])
        for chunk in violations["oversize"][:10]:
            md_lines.append(f"- chunk {chunk['ord']} at {chunk['start']}: size {chunk['size']}")

    if coverage["gaps"]:
        md_lines.extend(["", "### Coverage Gaps (Top 10)", ""])
        for i, (gap_start, gap_end) in enumerate(coverage["gaps"]):
            md_lines.append(
                f"- Gap {i + 1}: chars {gap_start}-{gap_end} ({gap_end - gap_start} chars)"
            )

    with open(verify_dir / "report.md", "w", encoding="utf-8") as f:
        f.write("\n".join(md_lines))
