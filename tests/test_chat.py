"""
Chat session manager tests.
"""

import asyncio

import pytest

from readgye.chat import (
    APOLOGY_MESSAGE,
    HISTORY_FAILED_MESSAGE,
    LOCAL_ID_PREFIX,
    LOGIN_REQUIRED_MESSAGE,
    ChatSessionManager,
)
from readgye.models import Session, UserInfo
from tests.conftest import wait_for
from tests.fake_backend import FakeBackend


EMAIL = "kim@readgye.test"
SEND = "POST /api/chat"
SESSIONS = "GET /api/chat/sessions"


@pytest.fixture
def token(backend: FakeBackend) -> str:
    backend.add_user(EMAIL, "secret123", "김철수")
    return FakeBackend.token_for(EMAIL)


@pytest.fixture
def chat(api, token) -> ChatSessionManager:
    return ChatSessionManager(api, lambda: token)


# =============================================================================
# Sending
# =============================================================================

@pytest.mark.anyio
async def test_blank_message_is_ignored(chat, backend):
    assert await chat.send_message("   ") is None
    assert chat.messages == []
    assert backend.calls[SEND] == 0


@pytest.mark.anyio
async def test_send_without_token_sets_error(api, backend):
    chat = ChatSessionManager(api, lambda: None)

    assert await chat.send_message("보증금 반환 조항이 궁금해요") is None
    assert chat.error == LOGIN_REQUIRED_MESSAGE
    assert chat.messages == []
    assert backend.request_count == 0


@pytest.mark.anyio
async def test_first_send_binds_server_session(chat, backend):
    answer = await chat.send_message("  보증금 반환 조항이 궁금해요 ")

    assert answer.content == "답변: 보증금 반환 조항이 궁금해요"
    assert chat.session_id == backend.chat_sessions[0]["id"]
    assert chat.state == "active"
    assert [m.role for m in chat.messages] == ["user", "assistant"]
    user_message = chat.messages[0]
    assert user_message.content == "보증금 반환 조항이 궁금해요"
    assert user_message.status == "sent"
    assert user_message.id.startswith(LOCAL_ID_PREFIX)


@pytest.mark.anyio
async def test_follow_up_reuses_session(chat, backend):
    await chat.send_message("첫 질문")
    session_id = chat.session_id

    await chat.send_message("두 번째 질문")

    assert chat.session_id == session_id
    assert len(backend.chat_sessions) == 1
    assert len(chat.messages) == 4
    assert len(backend.chat_messages[session_id]) == 4


@pytest.mark.anyio
async def test_failed_send_marks_message_and_apologizes(chat, backend):
    backend.chat_status = 500

    assert await chat.send_message("위약금 조항 설명해 주세요") is None

    user_message, apology = chat.messages
    assert user_message.status == "failed"
    assert apology.role == "assistant"
    assert apology.content == APOLOGY_MESSAGE
    assert chat.error == "AI 응답 생성에 실패했습니다."
    assert chat.session_id is None
    assert chat.is_loading is False


@pytest.mark.anyio
async def test_message_is_pending_while_in_flight_and_second_send_is_dropped(chat, backend):
    backend.chat_gate = asyncio.Event()

    first = asyncio.create_task(chat.send_message("첫 질문"))
    await wait_for(lambda: backend.calls[SEND] == 1)

    assert chat.is_loading is True
    assert chat.state == "loading"
    assert chat.messages[-1].status == "pending"
    assert await chat.send_message("두 번째 질문") is None
    assert len(chat.messages) == 1

    backend.chat_gate.set()
    await first

    assert backend.calls[SEND] == 1
    assert [m.status for m in chat.messages] == ["sent", "sent"]


# =============================================================================
# Sessions and restoration
# =============================================================================

@pytest.mark.anyio
async def test_on_focus_restores_most_recent_session(chat, backend):
    backend.add_chat_session("보증금", "2026-02-01T09:00:00", [("user", "예전 질문"), ("assistant", "예전 답변")])
    latest = backend.add_chat_session(
        "위약금", "2026-02-03T09:00:00", [("user", "최근 질문"), ("assistant", "최근 답변")]
    )

    assert await chat.on_focus() is True

    assert chat.session_id == latest["id"]
    assert [m.content for m in chat.messages] == ["최근 질문", "최근 답변"]
    assert chat.is_loading is False


@pytest.mark.anyio
async def test_on_focus_with_no_history_stays_idle(chat, backend):
    assert await chat.on_focus() is False
    assert chat.state == "idle"
    assert backend.calls[SESSIONS] == 1


@pytest.mark.anyio
async def test_on_focus_skips_when_conversation_is_loaded(chat, backend):
    await chat.send_message("질문")

    assert await chat.on_focus() is False
    assert backend.calls[SESSIONS] == 0


@pytest.mark.anyio
async def test_new_chat_suppresses_restoration_until_next_send(chat, backend):
    backend.add_chat_session("보증금", "2026-02-01T09:00:00", [("user", "예전 질문")])
    await chat.on_focus()

    chat.start_new_chat()

    assert chat.messages == []
    assert chat.session_id is None
    assert await chat.on_focus() is False
    assert backend.calls[SESSIONS] == 1

    await chat.send_message("새 질문")
    assert chat.is_new_chat is False
    assert len(backend.chat_sessions) == 2


@pytest.mark.anyio
async def test_explicit_load_leaves_new_chat_mode(chat, backend):
    old = backend.add_chat_session("보증금", "2026-02-01T09:00:00", [("user", "예전 질문")])
    chat.start_new_chat()

    assert await chat.load_session(old["id"]) is True

    assert chat.is_new_chat is False
    assert chat.session_id == old["id"]


@pytest.mark.anyio
async def test_load_unknown_session_reports_error(chat):
    assert await chat.load_session("chat-404") is False
    assert chat.error == HISTORY_FAILED_MESSAGE
    assert chat.session_id is None


@pytest.mark.anyio
async def test_list_sessions(chat, backend):
    backend.add_chat_session("보증금", "2026-02-01T09:00:00", [])

    sessions = await chat.list_sessions()

    assert [s.title for s in sessions] == ["보증금"]


@pytest.mark.anyio
async def test_sign_out_resets_conversation(chat):
    await chat.send_message("질문")

    chat.on_session_change(None)

    assert chat.session_id is None
    assert chat.messages == []
    assert chat.state == "idle"


@pytest.mark.anyio
async def test_token_refresh_keeps_conversation(chat):
    await chat.send_message("질문")
    user = UserInfo(id="user-1", name="김철수", email=EMAIL)

    chat.on_session_change(Session(user=user, token="refreshed"))

    assert len(chat.messages) == 2


@pytest.mark.anyio
async def test_switching_user_resets_conversation(chat):
    first = UserInfo(id="user-1", name="김철수", email=EMAIL)
    chat.on_session_change(Session(user=first, token="token-a"))
    await chat.send_message("A 계정 상담")
    chat.start_new_chat()
    await chat.send_message("A 계정 두 번째 상담")

    second = UserInfo(id="user-2", name="이영희", email="lee@readgye.test")
    chat.on_session_change(Session(user=second, token="token-b"))

    assert chat.session_id is None
    assert chat.messages == []
    assert chat.is_new_chat is False
    assert chat.state == "idle"
