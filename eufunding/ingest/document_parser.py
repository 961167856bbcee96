"""
Text extraction for funding-call documents (application guidelines, templates).

Tries PyPDF2 first and falls back to pdfplumber for layouts PyPDF2
handles badly.
"""

from pathlib import Path
from typing import Optional
import logging
from io import BytesIO

import PyPDF2
import pdfplumber

logger = logging.getLogger(__name__)

# Anything shorter is treated as a failed extraction (scanned PDFs etc.)
MIN_TEXT_CHARS = 100


class CallDocumentParser:
    """Extract plain text from call documents."""

    def read(self, path: Path) -> Optional[str]:
        """
        Extract text from a document on disk.

        Plain-text and markdown files are read as is; everything else is
        treated as PDF.
        """
        if path.suffix.lower() in {".txt", ".md"}:
            return path.read_text(encoding="utf-8", errors="replace")
        return self.extract_text(path.read_bytes())

    def extract_text(self, pdf_bytes: bytes) -> Optional[str]:
        """
        Extract text from PDF bytes.

        Returns None if neither backend yields usable text.
        """
        for backend in (self._extract_with_pypdf2, self._extract_with_pdfplumber):
            text = backend(pdf_bytes)
            if text and len(text.strip()) > MIN_TEXT_CHARS:
                return self._clean_text(text)

        logger.warning("Call document text extraction failed")
        return None

    def _extract_with_pypdf2(self, pdf_bytes: bytes) -> Optional[str]:
        try:
            reader = PyPDF2.PdfReader(BytesIO(pdf_bytes))
            pages = [page.extract_text() for page in reader.pages]
            return "\n\n".join(p for p in pages if p)
        except Exception as e:
            logger.debug(f"PyPDF2 failed: {e}")
            return None

    def _extract_with_pdfplumber(self, pdf_bytes: bytes) -> Optional[str]:
        try:
            with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
                pages = [page.extract_text() for page in pdf.pages]
            return "\n\n".join(p for p in pages if p)
        except Exception as e:
            logger.debug(f"pdfplumber failed: {e}")
            return None

    def _clean_text(self, text: str) -> str:
        """Drop blank lines and surrounding whitespace."""
        lines = (line.strip() for line in text.split('\n'))
        return "\n".join(line for line in lines if line)
