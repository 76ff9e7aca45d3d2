# tests/conftest.py
"""
Pytest configuration and fixtures for the layout inference tests.

Provides:
- Factories for tokens, blocks, pages, lines and columns
- Row builders for token grids laid out in one or two columns
- Shared page thresholds for a 10-unit text height

Usage:
    def test_row(make_token, make_block):
        block = make_block([make_token(0, 0), make_token(15, 0)])
        assert len(detect_lines(block)) == 1
"""

import itertools
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

# Add py-server to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "py-server"))

from models.layout_types import (  # noqa: E402
    Block,
    Column,
    Document,
    Line,
    Page,
    PageThresholds,
    Style,
    Text,
    Token,
)
from processors.geometry import union_box  # noqa: E402

TEXT_HEIGHT = 10.0
WORD_WIDTH = 10.0
WORD_GAP = 5.0


# =============================================================================
# OBJECT MODEL FACTORIES
# =============================================================================

@pytest.fixture
def make_token() -> Callable[..., Token]:
    """Factory for tokens; ids are unique within a test."""
    counter = itertools.count()

    def _make(
        x: float,
        y: float,
        width: float = WORD_WIDTH,
        height: float = TEXT_HEIGHT,
        base: Optional[float] = None,
        token_id: Optional[str] = None,
        style: Optional[Style] = None,
    ) -> Token:
        return Token(
            id=token_id or f"t{next(counter)}",
            x=x,
            y=y,
            width=width,
            height=height,
            base=y + height if base is None else base,
            value="word",
            style=style,
        )

    return _make


@pytest.fixture
def make_block() -> Callable[..., Block]:
    """Factory for blocks holding one text run per token."""

    def _make(tokens: Sequence[Token], block_id: str = "b1") -> Block:
        texts = [
            Text(
                id=f"{block_id}_text{i}",
                x=token.x,
                y=token.y,
                width=token.width,
                height=token.height,
                style=token.style,
                tokens=[token],
            )
            for i, token in enumerate(tokens)
        ]
        box = union_box(tokens)
        return Block(id=block_id, x=box.x, y=box.y, width=box.width, height=box.height, texts=texts)

    return _make


@pytest.fixture
def make_page() -> Callable[..., Page]:
    """Factory for pages."""

    def _make(blocks: Sequence[Block], width: float = 600, height: float = 800, number: int = 1) -> Page:
        return Page(number=number, id=f"p{number}", width=width, height=height, blocks=list(blocks))

    return _make


@pytest.fixture
def make_row(make_token) -> Callable[..., List[Token]]:
    """Factory for a row of evenly spaced words."""

    def _make(y: float, x_start: float, count: int, gap: float = WORD_GAP) -> List[Token]:
        return [make_token(x_start + i * (WORD_WIDTH + gap), y) for i in range(count)]

    return _make


@pytest.fixture
def paragraph_page(make_row, make_block, make_page) -> Callable[..., Page]:
    """
    Factory for a one-column page with two paragraphs.

    Rows sit at y = 100, 115, 130 then 160, 175: line gaps of 5 inside a
    paragraph and 20 between the paragraphs.
    """

    def _make(number: int = 1) -> Page:
        tokens = []
        for y in (100, 115, 130, 160, 175):
            tokens.extend(make_row(y, 50, 6))
        return make_page([make_block(tokens, block_id=f"p{number}_b1")], number=number)

    return _make


@pytest.fixture
def two_column_page(make_row, make_block, make_page) -> Page:
    """Ten rows of words at x 50-195 and x 400-545, rows 20 apart."""
    tokens = []
    for i in range(10):
        y = 100 + 20 * i
        tokens.extend(make_row(y, 50, 10))
        tokens.extend(make_row(y, 400, 10))
    return make_page([make_block(tokens)])


@pytest.fixture
def make_document() -> Callable[..., Document]:
    def _make(pages: Sequence[Page]) -> Document:
        return Document(pages=list(pages))

    return _make


# =============================================================================
# DERIVED MODEL FACTORIES
# =============================================================================

@pytest.fixture
def make_line() -> Callable[..., Line]:
    """Factory for lines built directly from a box."""
    counter = itertools.count()

    def _make(x: float, y: float, width: float = 100, height: float = TEXT_HEIGHT, line_id: Optional[str] = None) -> Line:
        line_id = line_id or f"l{next(counter)}"
        return Line(
            id=line_id,
            block_id="b1",
            x=x,
            y=y,
            width=width,
            height=height,
            base=y + height,
            member_ids=(line_id,),
            token_ids=(line_id,),
        )

    return _make


@pytest.fixture
def make_column() -> Callable[..., Column]:
    def _make(lines: Sequence[Line], x_start: float = 0, x_end: float = 600, column_id: str = "p001_c00") -> Column:
        return Column(id=column_id, page_number=1, index=0, x_start=x_start, x_end=x_end, lines=tuple(lines))

    return _make


@pytest.fixture
def thresholds() -> PageThresholds:
    """Thresholds of a page with 10-unit text and 5-unit word gaps."""
    return PageThresholds(
        median_height=TEXT_HEIGHT,
        alignment_tolerance=2.0,
        quantization_resolution=2.5,
        horizontal_spacing_mode=WORD_GAP,
    )
