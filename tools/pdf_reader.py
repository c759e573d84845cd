"""PDF inspection for contract uploads.

Uses pdfplumber to make sure a contract opens as a PDF and stays within
the backend's page limit before it is sent for analysis.
"""

import io
from typing import Any, Dict

import pdfplumber
from loguru import logger

from readgye.error_handling import DocumentValidationError


class PDFReader:
    """Reads the page count of a PDF without extracting its text."""

    def __init__(self, max_pages: int = 30):
        """Initialize PDF reader.

        Args:
            max_pages: Maximum number of pages accepted for analysis
        """
        self.max_pages = max_pages

    def inspect_bytes(self, file_bytes: bytes, filename: str = "contract.pdf") -> Dict[str, Any]:
        """Open PDF bytes and return its page count.

        Args:
            file_bytes: PDF file content
            filename: Original filename for logging

        Returns:
            Dictionary with ``page_count``

        Raises:
            DocumentValidationError: If the PDF cannot be opened or is too long
        """
        try:
            with pdfplumber.open(io.BytesIO(file_bytes)) as pdf:
                page_count = len(pdf.pages)
        except Exception as e:
            logger.warning(f"Failed to open PDF {filename}: {e}")
            raise DocumentValidationError(f"PDF 파일을 열 수 없습니다: {filename}") from e

        if page_count == 0:
            raise DocumentValidationError(f"PDF에 페이지가 없습니다: {filename}")

        if page_count > self.max_pages:
            logger.warning(
                f"PDF {filename} has {page_count} pages, exceeding limit of {self.max_pages}"
            )
            raise DocumentValidationError(
                f"PDF는 최대 {self.max_pages}페이지까지 분석할 수 있습니다."
            )

        logger.debug(f"Inspected PDF {filename}: {page_count} pages")
        return {"page_count": page_count}
