"""Counseling chat session manager.

Keeps the active conversation id and its ordered message list. Sending
is a two-phase append: the user message is shown immediately as a
``pending`` record and replaced by a ``sent`` or ``failed`` copy once the
server answers. State machine::

    Idle (no session) -> Loading (restoring or sending) -> Active (session bound)

with a New-Chat side state that suppresses automatic restoration until
the next successful send or an explicit session selection.
"""

import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

import httpx
from msgspec import structs
from loguru import logger

from readgye.api_client import ApiClient
from readgye.error_handling import ApiError, ReadgyeError
from readgye.models import ChatSession, Message, Session


APOLOGY_MESSAGE = "죄송합니다. 답변을 생성하는 중 오류가 발생했습니다. 잠시 후 다시 시도해 주세요."
SEND_FAILED_MESSAGE = "메시지를 전송하지 못했습니다."
LOGIN_REQUIRED_MESSAGE = "로그인이 필요합니다."
HISTORY_FAILED_MESSAGE = "상담 내역을 불러오지 못했습니다."

LOCAL_ID_PREFIX = "local-"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _local_id() -> str:
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


class ChatSessionManager:
    """Client-side state of the counseling screen.

    Args:
        api: Backend API client
        token_provider: Returns the current bearer token (or None)
    """

    def __init__(self, api: ApiClient, token_provider: Callable[[], Optional[str]]):
        self.api = api
        self._token_provider = token_provider
        self.session_id: Optional[str] = None
        self.messages: List[Message] = []
        self.is_loading = False
        self.error: Optional[str] = None
        self.is_new_chat = False
        self._user_id: Optional[str] = None

    @property
    def state(self) -> str:
        if self.is_loading:
            return "loading"
        if self.session_id is not None:
            return "active"
        return "idle"

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_message(self, text: str) -> Optional[Message]:
        """Send ``text`` and append the assistant's answer.

        Blank text and calls made while another send is in flight are
        ignored.

        Returns:
            The assistant message that was appended, or None
        """
        content = (text or "").strip()
        if not content or self.is_loading:
            return None

        token = self._token_provider()
        if not token:
            self.error = LOGIN_REQUIRED_MESSAGE
            return None

        self.is_loading = True
        self.error = None
        pending = Message(
            id=_local_id(),
            role="user",
            content=content,
            created_at=_now_iso(),
            status="pending",
        )
        self.messages.append(pending)

        try:
            reply = await self.api.send_chat(token, content, self.session_id)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Chat send failed: {e}")
            self._settle(pending, "failed")
            apology = Message(
                id=_local_id(),
                role="assistant",
                content=APOLOGY_MESSAGE,
                created_at=_now_iso(),
            )
            self.messages.append(apology)
            self.error = e.detail if isinstance(e, ApiError) and e.detail else SEND_FAILED_MESSAGE
            return None
        finally:
            self.is_loading = False

        self._settle(pending, "sent")
        if self.session_id != reply.session_id:
            logger.info(f"Chat bound to session {reply.session_id}")
        self.session_id = reply.session_id
        self.is_new_chat = False
        answer = Message(
            id=reply.message.id,
            role="assistant",
            content=reply.message.content,
            created_at=reply.message.created_at,
        )
        self.messages.append(answer)
        return answer

    def _settle(self, pending: Message, status: str) -> None:
        """Replace the pending record with a copy carrying ``status``."""
        for index, message in enumerate(self.messages):
            if message.id == pending.id:
                self.messages[index] = structs.replace(message, status=status)
                return

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def start_new_chat(self) -> None:
        """Clear the conversation and suppress automatic restoration."""
        self.messages = []
        self.session_id = None
        self.error = None
        self.is_new_chat = True

    async def list_sessions(self) -> List[ChatSession]:
        token = self._token_provider()
        if not token:
            return []
        try:
            return await self.api.chat_sessions(token)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Failed to list chat sessions: {e}")
            self.error = HISTORY_FAILED_MESSAGE
            return []

    async def load_session(self, session_id: str) -> bool:
        """Select a session explicitly, replacing the local message list."""
        loaded = await self._load_history(session_id)
        if loaded:
            self.is_new_chat = False
        return loaded

    async def _load_history(self, session_id: str) -> bool:
        token = self._token_provider()
        if not token:
            return False
        try:
            history = await self.api.chat_messages(token, session_id)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Failed to load chat session {session_id}: {e}")
            self.error = HISTORY_FAILED_MESSAGE
            return False

        self.session_id = session_id
        self.messages = list(history)
        self.error = None
        logger.debug(f"Loaded {len(history)} messages for chat session {session_id}")
        return True

    async def on_focus(self) -> bool:
        """Restore the most recent session when the view gains focus.

        Returns:
            True when a session was restored
        """
        if self.is_new_chat or self.is_loading:
            return False
        if self.session_id is not None and self.messages:
            return False
        if not self._token_provider():
            return False

        self.is_loading = True
        try:
            sessions = await self.list_sessions()
            if not sessions:
                return False
            latest = max(sessions, key=lambda session: session.created_at)
            return await self._load_history(latest.id)
        finally:
            self.is_loading = False

    def on_session_change(self, session: Optional[Session]) -> None:
        """Drop conversation state when the token goes away or the user changes.

        A token refresh for the same user keeps the conversation.
        """
        user_id = session.user.id if session is not None else None
        previous, self._user_id = self._user_id, user_id
        switched = None not in (previous, user_id) and previous != user_id
        if session is None or session.token is None or switched:
            if switched:
                logger.info(f"Chat state cleared after switching from user {previous}")
            self.session_id = None
            self.messages = []
            self.error = None
            self.is_new_chat = False
