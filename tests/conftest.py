"""Global test configuration for boundsplit tests."""

import logging
import random
from pathlib import Path
from typing import Dict

import pytest
import regex
import structlog

from boundsplit.chunking.capacity import ChunkCapacity
from boundsplit.chunking.sizers import Characters
from boundsplit.core import config as config_module

INPUTS_DIR = Path(__file__).parent / "inputs"
GRAPHEME_RE = regex.compile(r"\X")


def _read_inputs(kind: str, pattern: str) -> Dict[str, str]:
    inputs = {}
    for path in sorted((INPUTS_DIR / kind).glob(pattern)):
        # newline="" keeps CRLF line endings intact
        with open(path, "r", encoding="utf-8", newline="") as f:
            inputs[path.name] = f.read()
    return inputs


@pytest.fixture(autouse=True)
def reset_global_state():
    """Undo logging and settings changes made by CLI invocations."""
    settings = config_module.SETTINGS
    yield
    structlog.reset_defaults()
    root = logging.getLogger("boundsplit")
    root.handlers.clear()
    root.setLevel(logging.NOTSET)
    root.propagate = True
    config_module.SETTINGS = settings


@pytest.fixture
def rng():
    """Seeded generator so random capacities are reproducible."""
    return random.Random(20241018)


@pytest.fixture(scope="session")
def text_inputs() -> Dict[str, str]:
    return _read_inputs("text", "*.txt")


@pytest.fixture(scope="session")
def markdown_inputs() -> Dict[str, str]:
    return _read_inputs("markdown", "*.md")


@pytest.fixture
def check_partition():
    """Assert the structural guarantees of an untrimmed split."""

    def check(text, spans, capacity, sizer=None):
        sizer = sizer or Characters()
        capacity = ChunkCapacity.coerce(capacity)

        assert "".join(chunk.text for chunk in spans) == text
        position = 0
        for chunk in spans:
            assert chunk.start == position
            assert chunk.end > chunk.start
            assert text[chunk.start : chunk.end] == chunk.text
            position = chunk.end

            size = sizer.chunk_size(chunk.text, capacity).size
            if size > capacity.max:
                # Only a lone grapheme may exceed the maximum
                assert len(GRAPHEME_RE.findall(chunk.text)) == 1, chunk
        assert position == len(text)

    return check
