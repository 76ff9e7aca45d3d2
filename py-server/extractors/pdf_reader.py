"""
PDF Word Reader

Builds the Document object model straight from a PDF with pdfplumber, for
callers without a pdf2xml step. Each word becomes a token wrapped in its own
text run; each page holds a single block.
"""

import io
import logging
from typing import List, Union

import pdfplumber

from models.layout_types import Block, Document, Page, Style, Text, Token
from processors.geometry import union_box
from utils.validation import MalformedInputError

logger = logging.getLogger(__name__)

WORD_EXTRA_ATTRS = ["fontname", "size"]


def _page_blocks(page, number: int) -> List[Block]:
    words = page.extract_words(
        keep_blank_chars=False,
        use_text_flow=False,
        extra_attrs=WORD_EXTRA_ATTRS,
    )

    texts = []
    for i, word in enumerate(words, start=1):
        x0, x1 = float(word['x0']), float(word['x1'])
        top, bottom = float(word['top']), float(word['bottom'])
        size = word.get('size')
        style = Style(
            font_family=word.get('fontname'),
            font_size=float(size) if size is not None else None,
        )
        token = Token(
            id=f"p{number}_w{i}",
            x=x0,
            y=top,
            width=x1 - x0,
            height=bottom - top,
            base=bottom,
            value=word.get('text'),
            style=style,
        )
        texts.append(Text(
            id=f"p{number}_t{i}",
            x=x0,
            y=top,
            width=x1 - x0,
            height=bottom - top,
            style=style,
            tokens=[token],
        ))

    if not texts:
        return []

    box = union_box(texts)
    return [Block(id=f"p{number}_b1", x=box.x, y=box.y, width=box.width, height=box.height, texts=texts)]


def read_pdf_document(source: Union[str, bytes]) -> Document:
    """
    Read the words of a PDF into a Document.

    Args:
        source: Path to a PDF file or raw PDF bytes

    Returns:
        Document with one page per PDF page

    Raises:
        MalformedInputError: If pdfplumber cannot read the file
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        with pdfplumber.open(source) as pdf:
            pages = []
            for number, pdf_page in enumerate(pdf.pages, start=1):
                blocks = _page_blocks(pdf_page, number)
                pages.append(Page(
                    number=number,
                    id=f"p{number}",
                    width=float(pdf_page.width),
                    height=float(pdf_page.height),
                    blocks=blocks,
                ))
                logger.debug(f"Page {number}: {sum(len(b.texts) for b in blocks)} words")
    except MalformedInputError:
        raise
    except Exception as e:
        logger.error(f"PDF reading failed: {e}", exc_info=True)
        raise MalformedInputError(f"PDF reading failed: {str(e)}")

    logger.info(f"Read PDF document: {len(pages)} pages")
    return Document(pages=pages)
