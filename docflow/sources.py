"""
Text Sources

Producers of raw document text. The pipeline only needs a string; where it
comes from (a text file, a PDF text layer) is behind the TextSource protocol.

Scanned image OCR is not handled here: PDFs without a text layer yield an
ExtractionError rather than an empty document.
"""

from pathlib import Path
from typing import Protocol, Union

from loguru import logger

from .exceptions import ExtractionError


class TextSource(Protocol):
    """Anything that turns a file into raw text."""

    def produce_text(self, path: Union[str, Path]) -> str:
        ...


class PlainTextSource:
    """Reads UTF-8 text files."""

    def __init__(self, encoding: str = 'utf-8'):
        self.encoding = encoding

    def produce_text(self, path: Union[str, Path]) -> str:
        path = Path(path)
        try:
            text = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ExtractionError(
                f"Cannot read text from {path}: {e}",
                details={'path': str(path)},
            ) from e

        logger.debug(f"Read {len(text)} characters from {path.name}")
        return text


class PdfTextSource:
    """
    Extracts the embedded text layer of a PDF with pdfplumber.

    Pages are joined with blank lines. A PDF whose pages carry no text at
    all is reported as a failure.
    """

    def __init__(self, page_separator: str = '\n\n'):
        self.page_separator = page_separator

    def produce_text(self, path: Union[str, Path]) -> str:
        import pdfplumber

        path = Path(path)
        pages = []
        try:
            with pdfplumber.open(path) as pdf:
                for page in pdf.pages:
                    pages.append(page.extract_text() or '')
        except Exception as e:
            # pdfplumber surfaces parser failures as several unrelated types
            raise ExtractionError(
                f"Cannot extract PDF text from {path}: {e}",
                details={'path': str(path)},
            ) from e

        text = self.page_separator.join(p for p in pages if p.strip())
        if not text.strip():
            raise ExtractionError(
                f"No text layer found in {path}",
                details={'path': str(path), 'pages': len(pages)},
            )

        logger.info(f"Extracted text from {len(pages)} pages of {path.name}")
        return text


def source_for(path: Union[str, Path]) -> TextSource:
    """Pick a source by file extension."""
    if Path(path).suffix.lower() == '.pdf':
        return PdfTextSource()
    return PlainTextSource()
