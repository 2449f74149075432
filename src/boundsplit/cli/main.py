import json
import sys
from pathlib import Path
from typing import Optional

import typer

from ..chunking.sizers import SIZER_KINDS, sizer_from_name
from ..chunking.splitter import MarkdownSplitter, TextSplitter
from ..chunking.verify import read_source, verify_chunks_file
from ..core import config as config_module
from ..core.errors import BoundsplitError
from ..core.logging import get_logger, setup_logging

app = typer.Typer(add_completion=False, help="boundsplit CLI")
log = get_logger(__name__)

MARKDOWN_SUFFIXES = {".md", ".markdown", ".mdown", ".mkd"}


@app.callback()
def _init(
    config_file: Optional[str] = typer.Option(
        None,
        "--config",
        help="Config file (.boundsplit.yaml auto-discovered)",
    ),
) -> None:
    settings = config_module.Settings.load_config(config_file)
    config_module.SETTINGS = settings
    setup_logging(settings.LOG_FORMAT, settings.LOG_LEVEL)  # type: ignore[arg-type]


@app.command()
def version() -> None:
    from .. import __version__

    typer.echo(__version__)


@app.command()
def split(
    path: Path = typer.Argument(..., exists=True, dir_okay=False, help="Text or Markdown file"),
    max_size: Optional[int] = typer.Option(None, "--max", min=0, help="Maximum chunk size"),
    min_size: Optional[int] = typer.Option(
        None, "--min", min=0, help="Minimum chunk size (makes the capacity a range)"
    ),
    trim: Optional[bool] = typer.Option(
        None, "--trim/--no-trim", help="Strip whitespace around each chunk"
    ),
    markdown: Optional[bool] = typer.Option(
        None,
        "--markdown/--text",
        help="Force Markdown or plain-text splitting (default: by file suffix)",
    ),
    sizer: Optional[str] = typer.Option(
        None, "--sizer", help=f"Size measure: {'|'.join(SIZER_KINDS)}"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", help="Encoding or tokenizer name for token sizers"
    ),
    output_format: str = typer.Option("ndjson", "--format", help="Output format: ndjson|text"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write chunks to file instead of stdout"),
) -> None:
    """Split a document into chunks and write one record per chunk.

    Examples:
        boundsplit split notes.md --max 1000
        boundsplit split book.txt --min 200 --max 800 --trim
        boundsplit split book.txt --sizer tiktoken --model cl100k_base --max 256
    """
    settings = config_module.SETTINGS
    if output_format not in ("ndjson", "text"):
        typer.echo(f"❌ Unknown format: {output_format} (expected ndjson|text)", err=True)
        raise typer.Exit(2)

    try:
        chunk_sizer = sizer_from_name(sizer or settings.SPLIT_SIZER, model or settings.SPLIT_MODEL)
        capacity = settings.capacity(max_size, min_size)
        text = read_source(path)
        stream = open(out, "w", encoding="utf-8") if out else sys.stdout
    except (BoundsplitError, OSError, ValueError) as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(1) from e

    use_markdown = path.suffix.lower() in MARKDOWN_SUFFIXES if markdown is None else markdown
    splitter_cls = MarkdownSplitter if use_markdown else TextSplitter
    splitter = splitter_cls(chunk_sizer, trim=settings.SPLIT_TRIM if trim is None else trim)

    log.info(
        "split.start",
        path=str(path),
        splitter=splitter_cls.__name__,
        max=capacity.max,
        min=capacity.min,
        trim=splitter.trim,
    )

    count = 0
    try:
        for ord_, chunk in enumerate(splitter.chunk_spans(text, capacity)):
            if output_format == "ndjson":
                record = {
                    "ord": ord_,
                    "start": chunk.start,
                    "end": chunk.end,
                    "size": chunk_sizer.chunk_size(chunk.text, capacity).size,
                    "text": chunk.text,
                }
                stream.write(json.dumps(record, ensure_ascii=False) + "\n")
            else:
                stream.write(chunk.text + "\n\n")
            count += 1
    except BoundsplitError as e:
        typer.echo(f"❌ Split failed: {e}", err=True)
        raise typer.Exit(1) from e
    finally:
        if out:
            stream.close()

    log.info("split.complete", path=str(path), chunks=count)
    if out:
        typer.echo(f"✅ Wrote {count} chunks to {out}", err=True)


@app.command()
def verify(
    chunks_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Chunks ndjson file"),
    source: Path = typer.Option(..., "--source", exists=True, dir_okay=False, help="Source document"),
    max_size: Optional[int] = typer.Option(None, "--max", min=0, help="Maximum chunk size"),
    min_size: Optional[int] = typer.Option(None, "--min", min=0, help="Minimum chunk size"),
    sizer: Optional[str] = typer.Option(None, "--sizer", help=f"Size measure: {'|'.join(SIZER_KINDS)}"),
    model: Optional[str] = typer.Option(None, "--model", help="Encoding or tokenizer name"),
    require_lossless: bool = typer.Option(
        True,
        "--require-lossless/--allow-trimmed",
        help="Require chunks to reassemble the source exactly",
    ),
    out_dir: Path = typer.Option(Path("var/verify"), "--out-dir", help="Report directory"),
) -> None:
    """Verify chunk output against its source document.

    Checks that chunk texts match the source at their offsets, offsets strictly
    increase, chunks stay within the maximum size (single graphemes excepted)
    and, unless --allow-trimmed, that the chunks reassemble the source.
    Exits with code 1 when verification fails.
    """
    settings = config_module.SETTINGS
    try:
        chunk_sizer = sizer_from_name(sizer or settings.SPLIT_SIZER, model or settings.SPLIT_MODEL)
        capacity = settings.capacity(max_size, min_size)
        report = verify_chunks_file(
            chunks_file,
            source,
            capacity,
            sizer=chunk_sizer,
            lossless=require_lossless,
            out_dir=out_dir,
        )
    except (BoundsplitError, OSError, ValueError) as e:
        typer.echo(f"❌ Verification error: {e}", err=True)
        raise typer.Exit(1) from e

    violations = report["violations"]
    typer.echo(f"Chunks: {report['chunks']}", err=True)
    typer.echo(f"Coverage: {report['coverage']['coverage_pct']:.1f}%", err=True)
    typer.echo(f"Oversize: {len(violations['oversize'])}", err=True)
    typer.echo(f"Out of order: {len(violations['out_of_order'])}", err=True)
    typer.echo(f"Text mismatches: {len(violations['mismatched_text'])}", err=True)
    if "report_dir" in report:
        typer.echo(f"📁 Reports written to: {report['report_dir']}", err=True)

    if report["status"] != "PASS":
        typer.echo("❌ Verification FAILED", err=True)
        raise typer.Exit(1)
    typer.echo("✅ Verification PASSED", err=True)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
