"""Tools package for contract document utilities."""

from tools.legacy_normalizer import (
    normalize_analysis,
    normalize_risk_level,
    parse_legacy_payload,
    summarize_risks,
)
from tools.pdf_reader import PDFReader
from tools.file_validator import FileValidator

__all__ = [
    "normalize_analysis",
    "normalize_risk_level",
    "parse_legacy_payload",
    "summarize_risks",
    "PDFReader",
    "FileValidator",
]
