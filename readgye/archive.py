"""Archive of analysed contracts: listing, detail, deletion and upload."""

from datetime import datetime
from pathlib import Path
from typing import Callable, List, Literal, Optional

from loguru import logger

from readgye.api_client import ApiClient
from readgye.error_handling import (
    ApiError,
    AuthenticationError,
    DocumentValidationError,
    graceful_degradation,
)
from readgye.models import AnalysisResult, ArchiveEntry, DocumentSummary
from tools.file_validator import FileValidator
from tools.legacy_normalizer import normalize_analysis


ArchiveFilter = Literal["all", "done", "review"]

ARCHIVE_LOGIN_REQUIRED = "로그인 후 보관함을 확인할 수 있습니다."
DETAIL_FAILED_MESSAGE = "상세 결과를 불러오지 못했습니다."


def format_date(created_at: str) -> str:
    """Format an ISO timestamp as ``YYYY.MM.DD`` (``-`` if unparseable)."""
    try:
        moment = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return "-"
    return f"{moment.year}.{moment.month:02d}.{moment.day:02d}"


def map_status(document: DocumentSummary) -> str:
    if document.status != "done":
        return "review"
    if document.risk_count > 0:
        return "danger"
    return "safe"


def to_entry(document: DocumentSummary) -> ArchiveEntry:
    return ArchiveEntry(
        id=document.id,
        title=document.filename,
        date=format_date(document.created_at),
        status=map_status(document),
        risk_count=document.risk_count,
    )


def filter_entries(
    entries: List[ArchiveEntry],
    query: str = "",
    archive_filter: ArchiveFilter = "all"
) -> List[ArchiveEntry]:
    """Search titles case-insensitively and apply the status filter.

    ``done`` keeps safe documents; ``review`` keeps everything that needs
    a look (danger and still-processing).
    """
    needle = query.strip().lower()
    searched = [entry for entry in entries if needle in entry.title.lower()]
    if archive_filter == "done":
        return [entry for entry in searched if entry.status == "safe"]
    if archive_filter == "review":
        return [entry for entry in searched if entry.status != "safe"]
    return searched


class ArchiveService:
    """Document archive operations for the signed-in user."""

    def __init__(
        self,
        api: ApiClient,
        token_provider: Callable[[], Optional[str]],
        validator: Optional[FileValidator] = None
    ):
        self.api = api
        self._token_provider = token_provider
        self.validator = validator or FileValidator()

    def _require_token(self) -> str:
        token = self._token_provider()
        if not token:
            raise AuthenticationError(ARCHIVE_LOGIN_REQUIRED)
        return token

    async def list_documents(self) -> List[ArchiveEntry]:
        """Return every archived document mapped for display."""
        token = self._require_token()
        documents = await self.api.documents(token)
        return [to_entry(document) for document in documents]

    @graceful_degradation(fallback=list)
    async def recent_activity(self, limit: int = 3) -> List[ArchiveEntry]:
        """Most recent documents for the home view; failures give []."""
        token = self._token_provider()
        if not token:
            return []
        documents = await self.api.documents(token)
        return [to_entry(document) for document in documents[:limit]]

    async def get_result(self, document_id: str) -> AnalysisResult:
        """Fetch an analysis detail and normalize legacy payloads."""
        try:
            raw = await self.api.analysis_result(self._token_provider(), document_id)
        except ApiError as e:
            raise ApiError(e.status_code, e.detail or DETAIL_FAILED_MESSAGE) from e

        items = raw.get("analysis") or []
        analysis = normalize_analysis(items if isinstance(items, list) else [])
        logger.debug(f"Document {document_id}: {len(analysis)} normalized items")
        return AnalysisResult(
            filename=str(raw.get("filename") or ""),
            analysis=analysis,
        )

    async def delete_document(self, document_id: str) -> None:
        token = self._require_token()
        await self.api.delete_document(token, document_id)
        logger.info(f"Document {document_id} deleted")

    async def upload_contract(self, file_path: str) -> DocumentSummary:
        """Validate a local PDF and submit it for analysis."""
        token = self._require_token()
        path = Path(file_path)
        if not path.is_file():
            raise DocumentValidationError(f"파일을 찾을 수 없습니다: {file_path}")
        file_bytes = path.read_bytes()
        self.validator.validate(path.name, file_bytes)

        document = await self.api.upload_contract(token, path.name, file_bytes)
        logger.info(f"Uploaded {path.name} as document {document.id}")
        return document
