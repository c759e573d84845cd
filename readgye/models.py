"""
Data Models - msgspec Structs for efficient serialization.

These models define the records exchanged with the analysis backend
and the client-side state held by the auth context, the notification
poller and the chat manager. Using msgspec provides:
- Fast JSON serialization/deserialization
- Type validation at runtime on every decoded response
- Frozen structs for values that must be replaced, never mutated
"""

from enum import Enum
from typing import List, Literal, Optional
from msgspec import Struct


class RiskLevel(str, Enum):
    """Risk classification of an analysed clause."""
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"


class UserInfo(Struct, frozen=True):
    """Signed-in user as persisted under the ``user`` storage key."""
    id: str
    name: str
    email: str
    picture: str = ""
    is_admin: bool = False


class Session(Struct, frozen=True):
    """Authenticated client session.

    ``token`` may be None for a restored guest session that is still
    waiting for backend re-authentication.
    """
    user: UserInfo
    token: Optional[str] = None


class BackendProfile(Struct):
    """Profile returned by ``GET /api/auth/me``."""
    id: str
    email: str
    name: str
    is_admin: bool = False


class AuthResult(Struct):
    """Outcome of an interactive sign-in or sign-up."""
    success: bool
    error: Optional[str] = None


class TokenResponse(Struct):
    access_token: str
    token_type: str = "bearer"


class NotificationRecord(Struct):
    """Backend notification (analysis completed, risk alert, ...)."""
    id: str
    title: str
    message: str
    created_at: str
    is_read: bool = False
    document_id: Optional[str] = None


class NotificationSettings(Struct):
    """Per-user notification preferences."""
    push_enabled: bool = True
    analysis_complete: bool = True
    risk_alert: bool = True
    marketing_push: bool = False
    email_enabled: bool = True
    email_report: bool = False


class ChatSession(Struct):
    """Counseling conversation header."""
    id: str
    title: str
    created_at: str
    document_id: Optional[str] = None


class Message(Struct, frozen=True):
    """Single chat message.

    Locally created user messages start out ``pending`` and are replaced
    by a ``sent`` or ``failed`` copy once the server answers.
    """
    id: str
    role: Literal["user", "assistant"]
    content: str
    created_at: str
    status: Literal["pending", "sent", "failed"] = "sent"


class AssistantMessage(Struct):
    id: str
    content: str
    created_at: str


class ChatReply(Struct):
    """Response of ``POST /api/chat``."""
    session_id: str
    message: AssistantMessage


class AnalysisItem(Struct):
    """Normalized clause analysis."""
    clause_number: str
    title: str
    risk_level: RiskLevel
    summary: str = ""
    suggestion: str = ""


class AnalysisResult(Struct):
    """Analysis detail of one document after normalization."""
    filename: str
    analysis: List[AnalysisItem] = []


class RiskSummary(Struct):
    high: int = 0
    medium: int = 0
    low: int = 0


class DocumentSummary(Struct):
    """Document entry returned by ``GET /api/analyze``."""
    id: str
    filename: str
    status: str = "processing"
    created_at: str = ""
    risk_count: int = 0


class ArchiveEntry(Struct):
    """Client-side display record for an archived document."""
    id: str
    title: str
    date: str
    status: Literal["safe", "danger", "review"]
    risk_count: int = 0
