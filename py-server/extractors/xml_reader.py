"""
pdf2xml Interchange Reader

Builds the Document object model from the XML produced by pdf2xml
(`-blocks` mode). The expected shape is

    <DOCUMENT>
      <PAGE id="p1" number="1" width="595" height="842">
        <BLOCK id="p1_b1">
          <TEXT id="p1_t1" x=".." y=".." width=".." height="..">
            <TOKEN id="p1_w1" font-name=".." bold="no" italic="no"
                   font-size="10" font-color="#000000" rotation="0" angle="0"
                   x=".." y=".." base=".." width=".." height="..">word</TOKEN>

BLOCK elements directly under the root form a single page sized to the
content. TEXT elements directly under a PAGE are gathered into one block.
"""

import logging
import xml.etree.ElementTree as ET
from typing import List, Optional

from models.layout_types import Block, BoundingBox, Document, Page, Style, Text, Token
from processors.geometry import union_box
from utils.validation import MalformedInputError, is_finite_number

logger = logging.getLogger(__name__)

TRUE_VALUES = ('yes', 'true', '1')
GEOMETRY_ATTRIBUTES = ('x', 'y', 'width', 'height')


def _describe(element: ET.Element) -> str:
    element_id = element.get('id')
    return f"<{element.tag} id={element_id!r}>" if element_id else f"<{element.tag}>"


def _number(element: ET.Element, name: str, default: Optional[float] = None) -> float:
    """Read a finite numeric attribute; required when no default is given"""
    raw = element.get(name)
    if raw is None:
        if default is None:
            raise MalformedInputError(f"{_describe(element)} is missing required attribute '{name}'")
        return default

    try:
        value = float(raw)
    except ValueError:
        raise MalformedInputError(f"{_describe(element)} attribute '{name}' is not a number: {raw!r}")

    if not is_finite_number(value):
        raise MalformedInputError(f"{_describe(element)} attribute '{name}' is not finite: {raw!r}")
    return value


def _flag(element: ET.Element, name: str) -> Optional[bool]:
    raw = element.get(name)
    if raw is None:
        return None
    return raw.strip().lower() in TRUE_VALUES


def _identifier(element: ET.Element, fallback: str) -> str:
    return element.get('id') or fallback


def _read_token(element: ET.Element, fallback_id: str) -> Token:
    font_size = element.get('font-size')
    style = Style(
        font_family=element.get('font-name'),
        font_size=_number(element, 'font-size') if font_size is not None else None,
        bold=_flag(element, 'bold'),
        italic=_flag(element, 'italic'),
        font_color=element.get('font-color'),
    )
    value = element.text.strip() if element.text else None

    return Token(
        id=_identifier(element, fallback_id),
        x=_number(element, 'x'),
        y=_number(element, 'y'),
        width=_number(element, 'width'),
        height=_number(element, 'height'),
        base=_number(element, 'base'),
        value=value or None,
        style=style,
        rotation=_number(element, 'rotation', 0.0),
        angle=_number(element, 'angle', 0.0),
    )


def _read_text(element: ET.Element, fallback_id: str) -> Text:
    text_id = _identifier(element, fallback_id)
    tokens = [
        _read_token(child, f"{text_id}_w{i}")
        for i, child in enumerate(element.findall('TOKEN'), start=1)
    ]
    return Text(
        id=text_id,
        x=_number(element, 'x'),
        y=_number(element, 'y'),
        width=_number(element, 'width'),
        height=_number(element, 'height'),
        style=tokens[0].style if tokens else None,
        tokens=tokens,
    )


def _make_block(block_id: str, texts: List[Text], element: Optional[ET.Element] = None) -> Block:
    # Blocks without their own geometry take the union of their texts
    if element is not None and all(element.get(name) is not None for name in GEOMETRY_ATTRIBUTES):
        box = BoundingBox(**{name: _number(element, name) for name in GEOMETRY_ATTRIBUTES})
    else:
        box = union_box(texts)
    return Block(id=block_id, x=box.x, y=box.y, width=box.width, height=box.height, texts=texts)


def _read_block(element: ET.Element, fallback_id: str) -> Block:
    block_id = _identifier(element, fallback_id)
    texts = [
        _read_text(child, f"{block_id}_t{i}")
        for i, child in enumerate(element.findall('TEXT'), start=1)
    ]
    return _make_block(block_id, texts, element)


def _read_blocks(container: ET.Element, prefix: str) -> List[Block]:
    blocks = [
        _read_block(child, f"{prefix}_b{i}")
        for i, child in enumerate(container.findall('BLOCK'), start=1)
    ]

    loose = container.findall('TEXT')
    if loose:
        block_id = f"{prefix}_b0"
        texts = [_read_text(child, f"{block_id}_t{i}") for i, child in enumerate(loose, start=1)]
        blocks.append(_make_block(block_id, texts))

    return blocks


def _read_page(element: ET.Element, index: int) -> Page:
    number = int(_number(element, 'number', float(index)))
    page_id = element.get('id') or f"p{number}"
    return Page(
        number=number,
        id=page_id,
        width=_number(element, 'width'),
        height=_number(element, 'height'),
        blocks=_read_blocks(element, page_id),
    )


def _content_page(root: ET.Element) -> Page:
    blocks = _read_blocks(root, "p1")
    extent = union_box(blocks)
    return Page(number=1, id="p1", width=extent.right, height=extent.bottom, blocks=blocks)


def parse_interchange_format(data: bytes) -> Document:
    """
    Parse pdf2xml output into a Document.

    Args:
        data: Raw XML bytes

    Returns:
        Document with pages in document order

    Raises:
        MalformedInputError: On unparsable XML, a missing geometry attribute,
            or a non-numeric or non-finite coordinate
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        raise MalformedInputError(f"Invalid XML: {e}")

    if root.tag == 'PAGE':
        page_elements = [root]
    else:
        page_elements = root.findall('PAGE')

    if page_elements:
        pages = [_read_page(element, i) for i, element in enumerate(page_elements, start=1)]
    elif root.findall('BLOCK') or root.findall('TEXT'):
        pages = [_content_page(root)]
    else:
        pages = []

    document = Document(pages=pages)
    logger.info(
        f"Parsed interchange document: {len(document.pages)} pages, "
        f"{len(document.blocks())} blocks, {len(document.tokens())} tokens"
    )
    return document
