"""Text extraction from raw text, PDF files and URLs.

PDF and URL sources are converted with docling's DocumentConverter and
exported to Markdown so headings and bullets survive for the segmenter.
docling is an optional dependency (`pip install packforge[pdf]`).
"""

import logging
import re
from pathlib import Path
from typing import Optional, Union

from packforge.errors import ExtractionError
from packforge.models.ingest import InputSource

logger = logging.getLogger(__name__)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse every whitespace run (including line breaks) to one space and trim.

    Example:
        >>> normalize_text("Line 1\\n\\nLine   2 ")
        'Line 1 Line 2'
    """
    return _WHITESPACE_RE.sub(" ", text).strip()


def _convert_to_markdown(source: str) -> str:
    from docling.document_converter import DocumentConverter

    converter = DocumentConverter()
    result = converter.convert(source)
    return result.document.export_to_markdown()


def extract_from_pdf(file_path: Union[str, Path]) -> str:
    """Extract Markdown text from a PDF file.

    Raises:
        FileNotFoundError: If the PDF doesn't exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    logger.info(f"Converting PDF {file_path} to markdown")
    return _convert_to_markdown(str(file_path))


def extract_from_url(url: str) -> str:
    """Extract Markdown text from an HTML page."""
    if not re.match(r"^https?://", url):
        raise ExtractionError(f"Unsupported URL (expected http/https): {url}")

    logger.info(f"Converting URL {url} to markdown")
    return _convert_to_markdown(url)


def extract_text(
    source: Union[InputSource, str],
    input_path: Optional[Union[str, Path]] = None,
    input_text: Optional[str] = None,
    input_url: Optional[str] = None,
) -> str:
    """Extract raw text for the requested source type.

    Args:
        source: pdf, url or text
        input_path: PDF path (pdf source)
        input_text: Raw text (text source)
        input_url: Page URL (url source)

    Returns:
        Extracted text with line structure preserved (not normalized)

    Raises:
        ExtractionError: If the input required by the source is missing
        FileNotFoundError: If the PDF file doesn't exist
    """
    try:
        source = InputSource(source)
    except ValueError as e:
        raise ExtractionError(f"Unknown source type: {source}") from e

    if source == InputSource.PDF:
        if not input_path:
            raise ExtractionError("PDF source requires input_path")
        text = extract_from_pdf(input_path)
    elif source == InputSource.URL:
        if not input_url:
            raise ExtractionError("URL source requires input_url")
        text = extract_from_url(input_url)
    else:
        if not input_text or not input_text.strip():
            raise ExtractionError("Text source requires input_text")
        text = input_text.strip()

    logger.info(
        f"Extracted {len(text)} characters from {source.value} source",
        extra={"source": source.value, "char_count": len(text)},
    )
    return text
