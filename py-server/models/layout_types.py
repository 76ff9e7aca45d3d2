"""
Pydantic models for the page layout inference engine.

The external object model (Document → Page → Block → Text → Token) mirrors
the pdf2xml interchange format and is produced by the ingestion adapters.
The derived model (Line, Column, Paragraph) is produced by the core and is
never mutated after construction.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Alignment(str, Enum):
    """Edges two boxes can share"""
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"
    BASELINE = "baseline"
    CENTER_X = "center_x"
    CENTER_Y = "center_y"


class BoundaryFlag(str, Enum):
    """Paragraph position relative to column boundaries"""
    NONE = "none"
    ORPHAN = "orphan"
    WIDOW = "widow"


# Base models for positioned elements
class BoundingBox(BaseModel):
    """Axis-aligned box; y grows downward"""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: float
    height: float

    @property
    def left(self) -> float:
        return self.x

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def top(self) -> float:
        return self.y

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def baseline(self) -> float:
        """Boxes without glyph information sit on their bottom edge"""
        return self.bottom


class Shape(BaseModel):
    """Width and height of a box or a set of boxes"""
    model_config = ConfigDict(frozen=True)

    width: float
    height: float


class Style(BaseModel):
    """Font styling, opaque beyond equality comparison"""
    model_config = ConfigDict(frozen=True)

    font_family: Optional[str] = None
    font_size: Optional[float] = None
    bold: Optional[bool] = None
    italic: Optional[bool] = None
    font_color: Optional[str] = None

    @classmethod
    def common(cls, styles: Iterable[Optional['Style']]) -> Optional['Style']:
        """
        Style shared by a set of elements.

        Each attribute is kept only if every style agrees on it; a missing
        style makes the whole set unknown.
        """
        styles = list(styles)
        if not styles or any(s is None for s in styles):
            return None

        shared = {}
        for name in cls.model_fields:
            values = {getattr(s, name) for s in styles}
            shared[name] = values.pop() if len(values) == 1 else None
        return cls(**shared)

    @staticmethod
    def average_font_size(styles: Iterable[Optional['Style']]) -> Optional[float]:
        """Mean font size over the styles that carry one (None when none do)"""
        sizes = [s.font_size for s in styles if s is not None and s.font_size is not None]
        if not sizes:
            return None
        return sum(sizes) / len(sizes)


# External object model (pdf2xml)
class Token(BoundingBox):
    """Smallest positioned text unit (roughly one word)"""
    id: str
    base: float  # absolute y of the glyph baseline
    value: Optional[str] = None
    style: Optional[Style] = None
    rotation: float = 0.0
    angle: float = 0.0

    @property
    def baseline(self) -> float:
        return self.base


class Text(BoundingBox):
    """Text run holding tokens"""
    id: str
    style: Optional[Style] = None
    tokens: List[Token] = Field(default_factory=list)

    @property
    def baseline(self) -> float:
        if not self.tokens:
            return self.bottom
        return max(token.base for token in self.tokens)


class Block(BoundingBox):
    """Block holding text elements"""
    id: str
    texts: List[Text] = Field(default_factory=list)

    def tokens(self) -> List[Token]:
        return [token for text in self.texts for token in text.tokens]


class Page(BaseModel):
    """One page of a document"""
    model_config = ConfigDict(frozen=True)

    number: int = 1
    id: Optional[str] = None
    width: float
    height: float
    blocks: List[Block] = Field(default_factory=list)

    def texts(self) -> List[Text]:
        return [text for block in self.blocks for text in block.texts]

    def tokens(self) -> List[Token]:
        return [token for block in self.blocks for token in block.tokens()]


class Document(BaseModel):
    """Ordered pages of a document"""
    model_config = ConfigDict(frozen=True)

    pages: List[Page] = Field(default_factory=list)

    def blocks(self) -> List[Block]:
        """Returns all the block elements of the document"""
        return [block for page in self.pages for block in page.blocks]

    def texts(self) -> List[Text]:
        """Returns all the text elements of the document"""
        return [text for page in self.pages for text in page.texts()]

    def tokens(self) -> List[Token]:
        """Returns all the token elements of the document"""
        return [token for page in self.pages for token in page.tokens()]


# Derived layout model
class Line(BoundingBox):
    """
    Elements sharing a baseline, ordered left to right.

    The box is the union of the members; `base` is the baseline of the first
    element met by the sweep.
    """
    id: str
    block_id: str
    base: float
    member_ids: Tuple[str, ...]
    token_ids: Tuple[str, ...]
    style: Optional[Style] = None
    avg_font_size: Optional[float] = None

    @property
    def baseline(self) -> float:
        return self.base


class Column(BaseModel):
    """Vertical reading band [x_start, x_end) with its lines, top to bottom"""
    model_config = ConfigDict(frozen=True)

    id: str
    page_number: int
    index: int
    x_start: float
    x_end: float
    lines: Tuple[Line, ...] = ()

    @property
    def width(self) -> float:
        return self.x_end - self.x_start

    @property
    def line_ids(self) -> Tuple[str, ...]:
        return tuple(line.id for line in self.lines)


class Paragraph(BoundingBox):
    """Consecutive lines of one column"""
    id: str
    column_id: str
    line_ids: Tuple[str, ...]
    boundary: BoundaryFlag = BoundaryFlag.NONE


class PageThresholds(BaseModel):
    """Adaptive thresholds computed once per page"""
    model_config = ConfigDict(frozen=True)

    median_height: float
    alignment_tolerance: float  # epsilon, in page units
    quantization_resolution: float
    horizontal_spacing_mode: float
    line_spacing_mode: Optional[float] = None
    horizontal_fallback: bool = False
    line_fallback: bool = False


class GeometryIssue(BaseModel):
    """An entity skipped because of invalid geometry"""
    model_config = ConfigDict(frozen=True)

    entity_kind: str
    entity_id: Optional[str] = None
    message: str


class PageLayout(BaseModel):
    """Recovered layout of one page"""
    model_config = ConfigDict(frozen=True)

    page_number: int
    width: float
    height: float
    thresholds: Optional[PageThresholds] = None
    columns: Tuple[Column, ...] = ()
    paragraphs: Tuple[Paragraph, ...] = ()
    issues: Tuple[GeometryIssue, ...] = ()

    @property
    def lines(self) -> List[Line]:
        return [line for column in self.columns for line in column.lines]


class DocumentLayout(BaseModel):
    """Recovered layout of a document, pages in document order"""
    model_config = ConfigDict(frozen=True)

    pages: Tuple[PageLayout, ...] = ()


# API request models
class AnalyzeDocumentRequest(BaseModel):
    """JSON body of the document analysis endpoint"""
    document: Document
    config: Optional[Dict[str, Any]] = None
