"""
Async HTTP client for the contract-analysis backend.

Every method maps to one REST endpoint and returns decoded msgspec
structs. Non-2xx answers raise ApiError with the backend's ``detail``
message when one is present; transport failures propagate as
``httpx.HTTPError`` so callers can tell "server said no" apart from
"server unreachable".
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import msgspec
from loguru import logger

from readgye.error_handling import ApiError, ResponseFormatError
from readgye.logging_config import log_api_call
from readgye.models import (
    BackendProfile,
    ChatReply,
    ChatSession,
    DocumentSummary,
    Message,
    NotificationRecord,
    NotificationSettings,
    TokenResponse,
)


T = TypeVar("T")


def extract_detail(response: httpx.Response) -> Optional[str]:
    """Return the ``detail`` field of an error body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str):
            return detail
        if detail is not None:
            return str(detail)
    return None


class ApiClient:
    """Thin async wrapper around the backend REST API.

    Args:
        base_url: Backend root URL (``API_BASE_URL``)
        timeout: Per-request timeout in seconds
        transport: Optional httpx transport (tests mount an ASGI app here)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    @staticmethod
    def _auth(token: Optional[str]) -> Dict[str, str]:
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any
    ) -> httpx.Response:
        response = await self._client.request(
            method, path, headers=self._auth(token), **kwargs
        )
        if response.is_success:
            return response

        detail = extract_detail(response)
        logger.debug(f"{method} {path} returned HTTP {response.status_code}")
        raise ApiError(response.status_code, detail)

    @staticmethod
    def _decode(response: httpx.Response, type_: Type[T]) -> T:
        try:
            return msgspec.json.decode(response.content, type=type_)
        except msgspec.DecodeError as e:
            raise ResponseFormatError(
                f"Unexpected response from {response.request.url.path}: {e}"
            ) from e

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    @log_api_call("auth.signup")
    async def signup(self, email: str, password: str, name: str) -> None:
        await self._request(
            "POST", "/api/auth/signup",
            json={"email": email, "password": password, "name": name},
        )

    @log_api_call("auth.login")
    async def login(self, email: str, password: str) -> str:
        """Exchange credentials for a bearer token (form-encoded, OAuth2 style)."""
        response = await self._request(
            "POST", "/api/auth/login",
            data={"username": email, "password": password},
        )
        return self._decode(response, TokenResponse).access_token

    @log_api_call("auth.me")
    async def me(self, token: str) -> BackendProfile:
        response = await self._request("GET", "/api/auth/me", token=token)
        return self._decode(response, BackendProfile)

    @log_api_call("auth.change_password")
    async def change_password(self, token: str, current_password: str, new_password: str) -> None:
        await self._request(
            "POST", "/api/auth/change-password", token=token,
            json={"current_password": current_password, "new_password": new_password},
        )

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    @log_api_call("notifications.unread")
    async def unread_notifications(self, token: str) -> List[NotificationRecord]:
        response = await self._request("GET", "/api/notifications/unread", token=token)
        return self._decode(response, List[NotificationRecord])

    @log_api_call("notifications.list")
    async def notifications(self, token: str) -> List[NotificationRecord]:
        response = await self._request("GET", "/api/notifications", token=token)
        return self._decode(response, List[NotificationRecord])

    @log_api_call("notifications.read")
    async def mark_notification_read(self, token: str, notification_id: str) -> None:
        await self._request(
            "POST", f"/api/notifications/{notification_id}/read", token=token
        )

    @log_api_call("notifications.read_all")
    async def mark_all_notifications_read(self, token: str) -> None:
        await self._request("POST", "/api/notifications/read-all", token=token)

    @log_api_call("notifications.settings")
    async def notification_settings(self, token: str) -> NotificationSettings:
        response = await self._request("GET", "/api/notifications/settings", token=token)
        return self._decode(response, NotificationSettings)

    @log_api_call("notifications.update_settings")
    async def update_notification_settings(
        self, token: str, settings: NotificationSettings
    ) -> None:
        await self._request(
            "PUT", "/api/notifications/settings", token=token,
            json=msgspec.to_builtins(settings),
        )

    # ------------------------------------------------------------------
    # Chat
    # ------------------------------------------------------------------

    @log_api_call("chat.send")
    async def send_chat(self, token: str, message: str, session_id: Optional[str]) -> ChatReply:
        response = await self._request(
            "POST", "/api/chat", token=token,
            json={"message": message, "session_id": session_id},
        )
        return self._decode(response, ChatReply)

    @log_api_call("chat.sessions")
    async def chat_sessions(self, token: str) -> List[ChatSession]:
        response = await self._request("GET", "/api/chat/sessions", token=token)
        return self._decode(response, List[ChatSession])

    @log_api_call("chat.messages")
    async def chat_messages(self, token: str, session_id: str) -> List[Message]:
        response = await self._request(
            "GET", f"/api/chat/sessions/{session_id}/messages", token=token
        )
        return self._decode(response, List[Message])

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    @log_api_call("analyze.list")
    async def documents(self, token: str) -> List[DocumentSummary]:
        response = await self._request("GET", "/api/analyze", token=token)
        return self._decode(response, List[DocumentSummary])

    @log_api_call("analyze.result")
    async def analysis_result(self, token: Optional[str], document_id: str) -> Dict[str, Any]:
        """Fetch the raw analysis detail.

        The ``analysis`` items are returned undecoded because older
        records need the legacy normalizer before they fit AnalysisItem.
        """
        response = await self._request(
            "GET", f"/api/analyze/{document_id}/result", token=token
        )
        return self._decode(response, Dict[str, Any])

    @log_api_call("analyze.upload")
    async def upload_contract(
        self, token: str, filename: str, file_bytes: bytes
    ) -> DocumentSummary:
        response = await self._request(
            "POST", "/api/analyze", token=token,
            files={"file": (filename, file_bytes, "application/pdf")},
        )
        return self._decode(response, DocumentSummary)

    @log_api_call("analyze.delete")
    async def delete_document(self, token: str, document_id: str) -> None:
        await self._request("DELETE", f"/api/analyze/{document_id}", token=token)

    # ------------------------------------------------------------------
    # Support
    # ------------------------------------------------------------------

    @log_api_call("contact.submit")
    async def submit_contact(self, token: str, category: str, title: str, content: str) -> None:
        await self._request(
            "POST", "/api/contact", token=token,
            json={"category": category, "title": title, "content": content},
        )
