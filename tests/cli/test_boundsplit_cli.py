"""Tests for the boundsplit CLI."""

import json
import tempfile
from pathlib import Path

from typer.testing import CliRunner

from boundsplit import __version__
from boundsplit.cli.main import app

INPUTS_DIR = Path(__file__).parent.parent / "inputs"
TEXT_FILE = INPUTS_DIR / "text" / "lighthouse.txt"
MARKDOWN_FILE = INPUTS_DIR / "markdown" / "guide.md"


def read_exact(path: Path) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def read_records(path: Path):
    with open(path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


class TestSplitCLI:
    """Test the split command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.temp_path = Path(tempfile.mkdtemp())
        self.out = self.temp_path / "chunks.ndjson"

    def split(self, *args):
        return self.runner.invoke(app, ["split", *map(str, args), "--out", str(self.out)])

    def test_version(self):
        result = self.runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_split_text_file(self):
        result = self.split(TEXT_FILE, "--max", 200)

        assert result.exit_code == 0, result.output
        assert "Wrote" in result.output
        records = read_records(self.out)
        assert "".join(record["text"] for record in records) == read_exact(TEXT_FILE)
        assert [record["ord"] for record in records] == list(range(len(records)))
        for record in records:
            assert set(record) == {"ord", "start", "end", "size", "text"}
            assert record["size"] <= 200
            assert record["end"] - record["start"] == len(record["text"])

    def test_markdown_detected_by_suffix(self):
        result = self.split(MARKDOWN_FILE, "--max", 500)

        assert result.exit_code == 0, result.output
        first_lines = [record["text"].splitlines()[0] for record in read_records(self.out)]
        assert first_lines == [
            "# Field Guide to Tide Pools",
            "## Getting There",
            "## What You Will Find",
            "### Anemones",
            "### Recording Observations",
        ]

    def test_force_plain_text(self):
        result = self.split(MARKDOWN_FILE, "--max", 500, "--text")

        assert result.exit_code == 0, result.output
        records = read_records(self.out)
        assert "".join(record["text"] for record in records) == read_exact(MARKDOWN_FILE)

    def test_trim(self):
        result = self.split(TEXT_FILE, "--max", 120, "--trim")

        assert result.exit_code == 0, result.output
        source = read_exact(TEXT_FILE)
        for record in read_records(self.out):
            assert record["text"] == record["text"].strip()
            assert source[record["start"] : record["end"]] == record["text"]

    def test_inverted_range(self):
        result = self.split(TEXT_FILE, "--min", 300, "--max", 100)

        assert result.exit_code == 0, result.output
        assert all(record["size"] <= 300 for record in read_records(self.out))

    def test_grapheme_sizer(self):
        result = self.split(TEXT_FILE, "--max", 64, "--sizer", "graphemes")

        assert result.exit_code == 0, result.output
        assert all(record["size"] <= 64 for record in read_records(self.out))

    def test_text_format(self):
        result = self.split(TEXT_FILE, "--max", 400, "--format", "text")

        assert result.exit_code == 0, result.output
        assert "lighthouse" in self.out.read_text(encoding="utf-8")

    def test_unknown_format(self):
        result = self.split(TEXT_FILE, "--format", "xml")

        assert result.exit_code == 2
        assert "Unknown format" in result.output

    def test_unknown_sizer(self):
        result = self.split(TEXT_FILE, "--sizer", "syllables")

        assert result.exit_code == 1
        assert "Unknown sizer" in result.output

    def test_missing_file(self):
        result = self.split(self.temp_path / "missing.txt")

        assert result.exit_code != 0
        assert not self.out.exists()

    def test_unwritable_output(self):
        out = self.temp_path / "missing" / "chunks.ndjson"

        result = self.runner.invoke(app, ["split", str(TEXT_FILE), "--out", str(out)])

        assert result.exit_code == 1
        assert "❌" in result.output
        assert isinstance(result.exception, SystemExit)


class TestConfiguredSplit:
    """Test settings from config files and the environment."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.temp_path = Path(tempfile.mkdtemp())
        self.out = self.temp_path / "chunks.ndjson"

    def test_auto_discovered_config(self, monkeypatch):
        (self.temp_path / ".boundsplit.yaml").write_text("SPLIT_MAX_SIZE: 50\nSPLIT_TRIM: true\n")
        monkeypatch.chdir(self.temp_path)

        result = self.runner.invoke(app, ["split", str(TEXT_FILE), "--out", str(self.out)])

        assert result.exit_code == 0, result.output
        for record in read_records(self.out):
            assert record["size"] <= 50
            assert record["text"] == record["text"].strip()

    def test_explicit_toml_config(self, monkeypatch):
        config = self.temp_path / "split.toml"
        config.write_text('SPLIT_MAX_SIZE = 40\nSPLIT_SIZER = "bytes"\n')
        monkeypatch.chdir(self.temp_path)

        result = self.runner.invoke(
            app, ["--config", str(config), "split", str(TEXT_FILE), "--out", str(self.out)]
        )

        assert result.exit_code == 0, result.output
        for record in read_records(self.out):
            assert len(record["text"].encode("utf-8")) <= 40

    def test_cli_flags_beat_config(self, monkeypatch):
        (self.temp_path / ".boundsplit.yaml").write_text("SPLIT_MAX_SIZE: 50\n")
        monkeypatch.chdir(self.temp_path)

        result = self.runner.invoke(
            app, ["split", str(TEXT_FILE), "--max", "500", "--out", str(self.out)]
        )

        assert result.exit_code == 0, result.output
        assert max(record["size"] for record in read_records(self.out)) > 50

    def test_environment(self, monkeypatch):
        monkeypatch.chdir(self.temp_path)
        monkeypatch.setenv("SPLIT_MAX_SIZE", "60")

        result = self.runner.invoke(app, ["split", str(TEXT_FILE), "--out", str(self.out)])

        assert result.exit_code == 0, result.output
        assert all(record["size"] <= 60 for record in read_records(self.out))


class TestVerifyCLI:
    """Test the verify command."""

    def setup_method(self):
        """Set up test fixtures."""
        self.runner = CliRunner()
        self.temp_path = Path(tempfile.mkdtemp())
        self.out = self.temp_path / "chunks.ndjson"
        self.verify_dir = self.temp_path / "verify"

    def split(self, *args):
        result = self.runner.invoke(
            app, ["split", str(TEXT_FILE), *map(str, args), "--out", str(self.out)]
        )
        assert result.exit_code == 0, result.output

    def verify(self, *args):
        return self.runner.invoke(
            app,
            [
                "verify",
                str(self.out),
                "--source",
                str(TEXT_FILE),
                "--out-dir",
                str(self.verify_dir),
                *map(str, args),
            ],
        )

    def test_split_output_passes(self):
        self.split("--max", 150)

        result = self.verify("--max", 150)

        assert result.exit_code == 0, result.output
        assert "Verification PASSED" in result.output
        assert "Coverage: 100.0%" in result.output
        reports = list(self.verify_dir.glob("*/report.json"))
        assert len(reports) == 1
        assert json.loads(reports[0].read_text(encoding="utf-8"))["status"] == "PASS"

    def test_smaller_max_fails(self):
        self.split("--max", 150)

        result = self.verify("--max", 50)

        assert result.exit_code == 1
        assert "Verification FAILED" in result.output

    def test_tampered_chunk_fails(self):
        self.split("--max", 150)
        records = read_records(self.out)
        records[0]["text"] = records[0]["text"].upper()
        with open(self.out, "w", encoding="utf-8") as f:
            for record in records:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")

        result = self.verify("--max", 150)

        assert result.exit_code == 1
        assert "Text mismatches: 1" in result.output

    def test_trimmed_output(self):
        self.split("--max", 150, "--trim")

        assert self.verify("--max", 150).exit_code == 1
        result = self.verify("--max", 150, "--allow-trimmed")
        assert result.exit_code == 0, result.output
