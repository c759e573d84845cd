"""읽계 (readgye) contract-analysis client package.

Only the base layer is re-exported here; the stateful components live in
their own modules (``readgye.client.create_client`` wires them together).
"""

from readgye.models import (
    RiskLevel,
    UserInfo,
    Session,
    BackendProfile,
    AuthResult,
    NotificationRecord,
    NotificationSettings,
    ChatSession,
    Message,
    ChatReply,
    AnalysisItem,
    AnalysisResult,
    RiskSummary,
    DocumentSummary,
    ArchiveEntry,
)

from readgye.logging_config import (
    setup_logging,
    get_user_logger,
    log_api_call,
)

from readgye.error_handling import (
    ReadgyeError,
    ApiError,
    ResponseFormatError,
    AuthenticationError,
    StorageError,
    ValidationError,
    DocumentValidationError,
    handle_errors,
    graceful_degradation,
)

from readgye.config import ClientConfig, load_config

__version__ = "0.1.0"

__all__ = [
    # Models
    "RiskLevel",
    "UserInfo",
    "Session",
    "BackendProfile",
    "AuthResult",
    "NotificationRecord",
    "NotificationSettings",
    "ChatSession",
    "Message",
    "ChatReply",
    "AnalysisItem",
    "AnalysisResult",
    "RiskSummary",
    "DocumentSummary",
    "ArchiveEntry",
    # Logging
    "setup_logging",
    "get_user_logger",
    "log_api_call",
    # Error Handling
    "ReadgyeError",
    "ApiError",
    "ResponseFormatError",
    "AuthenticationError",
    "StorageError",
    "ValidationError",
    "DocumentValidationError",
    "handle_errors",
    "graceful_degradation",
    # Configuration
    "ClientConfig",
    "load_config",
]
