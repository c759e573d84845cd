"""Validation of contract files before upload."""

from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from readgye.error_handling import DocumentValidationError
from tools.pdf_reader import PDFReader


class FileValidator:
    """Validator for contract files selected for upload."""

    def __init__(
        self,
        max_size_mb: int = 10,
        max_pages: int = 30,
        allowed_extensions: Optional[List[str]] = None
    ):
        """Initialize file validator.

        Args:
            max_size_mb: Maximum file size in megabytes
            max_pages: Maximum PDF page count
            allowed_extensions: List of allowed file extensions
        """
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.allowed_extensions = allowed_extensions or [".pdf"]
        self.pdf_reader = PDFReader(max_pages=max_pages)

    def check(self, filename: str, file_content: bytes) -> List[str]:
        """Return the list of validation errors (empty when the file is fine)."""
        errors = []
        file_ext = Path(filename).suffix.lower()

        if file_ext not in self.allowed_extensions:
            errors.append(
                f"지원하지 않는 파일 형식입니다. 허용 형식: {', '.join(self.allowed_extensions)}"
            )

        file_size = len(file_content)
        if file_size == 0:
            errors.append("빈 파일입니다.")
        elif file_size > self.max_size_bytes:
            errors.append(
                f"파일 크기({file_size / 1024 / 1024:.2f} MB)가 "
                f"최대 허용 크기({self.max_size_bytes / 1024 / 1024:.0f} MB)를 초과합니다."
            )

        if file_ext == ".pdf" and file_content and not file_content.startswith(b"%PDF"):
            errors.append("올바른 PDF 파일이 아닙니다.")

        return errors

    def validate(self, filename: str, file_content: bytes) -> Dict[str, Any]:
        """Validate a contract file, including a pdfplumber open check.

        Raises:
            DocumentValidationError: On the first failed check
        """
        errors = self.check(filename, file_content)
        if errors:
            logger.warning(f"File validation failed for {filename}: {'; '.join(errors)}")
            raise DocumentValidationError(errors[0])

        info = self.pdf_reader.inspect_bytes(file_content, filename=filename)
        return {
            "filename": filename,
            "file_size_mb": len(file_content) / 1024 / 1024,
            "page_count": info["page_count"],
        }
