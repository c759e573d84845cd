"""
Account settings tests: password change, contact and notification settings.
"""

import pytest

from readgye.account import (
    SETTINGS_SAVE_FAILED,
    AccountService,
    validate_contact,
    validate_password_change,
)
from readgye.error_handling import ApiError, AuthenticationError, ValidationError
from readgye.models import NotificationSettings
from tests.fake_backend import FakeBackend


EMAIL = "kim@readgye.test"


@pytest.fixture
def token(backend: FakeBackend) -> str:
    backend.add_user(EMAIL, "secret123", "김철수")
    return FakeBackend.token_for(EMAIL)


@pytest.fixture
def account(api, token) -> AccountService:
    return AccountService(api, lambda: token)


@pytest.mark.parametrize("current, new, confirm, expected", [
    ("", "newpass1", "newpass1", "현재 비밀번호를 입력해 주세요."),
    ("secret123", " ", " ", "새 비밀번호를 입력해 주세요."),
    ("secret123", "abc", "abc", "새 비밀번호는 6자 이상이어야 합니다."),
    ("secret123", "newpass1", "newpass2", "새 비밀번호가 일치하지 않습니다."),
    ("secret123", "secret123", "secret123", "현재 비밀번호와 다른 비밀번호를 입력해 주세요."),
    ("secret123", "newpass1", "newpass1", None),
])
def test_validate_password_change(current, new, confirm, expected):
    assert validate_password_change(current, new, confirm) == expected


def test_validate_contact():
    assert validate_contact(None, "제목", "내용") == "문의 유형을 선택해 주세요."
    assert validate_contact("refund", "제목", "내용") == "문의 유형을 선택해 주세요."
    assert validate_contact("bug", "  ", "내용") == "제목을 입력해 주세요."
    assert validate_contact("bug", "제목", "") == "내용을 입력해 주세요."
    assert validate_contact("bug", "제목", "내용") is None


@pytest.mark.anyio
async def test_change_password(account, backend):
    await account.change_password("secret123", "newpass1", "newpass1")

    assert backend.users[EMAIL]["password"] == "newpass1"


@pytest.mark.anyio
async def test_change_password_validation_error_skips_backend(account, backend):
    with pytest.raises(ValidationError, match="일치하지 않습니다"):
        await account.change_password("secret123", "newpass1", "other")

    assert backend.calls["POST /api/auth/change-password"] == 0


@pytest.mark.anyio
async def test_change_password_wrong_current_password(account):
    with pytest.raises(ApiError) as exc_info:
        await account.change_password("wrong-pass", "newpass1", "newpass1")

    assert exc_info.value.detail == "현재 비밀번호가 올바르지 않습니다."


@pytest.mark.anyio
async def test_change_password_requires_token(api):
    with pytest.raises(AuthenticationError):
        await AccountService(api, lambda: None).change_password("secret123", "newpass1", "newpass1")


@pytest.mark.anyio
async def test_submit_contact_trims_fields(account, backend):
    await account.submit_contact("bug", "  앱이 멈춰요 ", " 업로드 중 멈춥니다. ")

    assert backend.contacts == [{
        "category": "bug",
        "title": "앱이 멈춰요",
        "content": "업로드 중 멈춥니다.",
        "user_id": backend.users[EMAIL]["id"],
    }]


@pytest.mark.anyio
async def test_notification_settings_round_trip(account):
    defaults = await account.load_notification_settings()
    assert defaults == NotificationSettings()

    await account.save_notification_settings(NotificationSettings(marketing_push=True, email_report=True))

    loaded = await account.load_notification_settings()
    assert loaded.marketing_push is True
    assert loaded.email_report is True
    assert loaded.push_enabled is True


@pytest.mark.anyio
async def test_load_notification_settings_degrades_to_defaults(api):
    account = AccountService(api, lambda: "expired")

    assert await account.load_notification_settings() == NotificationSettings()


@pytest.mark.anyio
async def test_save_notification_settings_failure(api):
    account = AccountService(api, lambda: "expired")

    with pytest.raises(ApiError, match=SETTINGS_SAVE_FAILED):
        await account.save_notification_settings(NotificationSettings())
