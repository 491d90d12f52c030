"""Text extraction from uploaded bytes via pypdf, with a plain-text fallback."""

from __future__ import annotations

import io
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import pypdf
from pypdf.errors import PyPdfError

from docent.errors import ExtractionError

logger = logging.getLogger(__name__)

_PDF_MAGIC = b"%PDF"


@dataclass
class ExtractedText:
    text: str
    page_count: int


class TextExtractor(ABC):
    """bytes → plain text plus page count."""

    @abstractmethod
    def extract(self, data: bytes, file_name: str = "") -> ExtractedText:
        """Extract text from *data*.

        Raises:
            ExtractionError: If the document is corrupt or unsupported.
        """


class PdfExtractor(TextExtractor):
    """Extract PDF text page-by-page with ``pypdf.PdfReader``.

    - Pages that yield no text (scanned images, etc.) are skipped; the
      remaining page texts are joined with blank lines.
    - Input that is not a PDF is decoded as UTF-8 plain text (one page).
    """

    def extract(self, data: bytes, file_name: str = "") -> ExtractedText:
        if data.startswith(_PDF_MAGIC):
            return self._extract_pdf(data, file_name)
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractionError(
                f"Unsupported document: {file_name or '<bytes>'} is neither PDF nor UTF-8 text",
                details={"file_name": file_name},
            ) from exc
        return ExtractedText(text=text, page_count=1)

    @staticmethod
    def _extract_pdf(data: bytes, file_name: str) -> ExtractedText:
        try:
            reader = pypdf.PdfReader(io.BytesIO(data))
            parts: list[str] = []
            for page in reader.pages:
                page_text = page.extract_text() or ""
                stripped = page_text.strip()
                if stripped:
                    parts.append(stripped)
            page_count = len(reader.pages)
        except (PyPdfError, ValueError, KeyError, OSError) as exc:
            raise ExtractionError(
                f"Corrupt PDF: {file_name or '<bytes>'}: {exc}",
                details={"file_name": file_name},
            ) from exc
        logger.debug(
            "Extracted PDF", extra={"file_name": file_name, "page_count": page_count}
        )
        return ExtractedText(text="\n\n".join(parts), page_count=page_count)
