"""Account settings: password change, support contact, notification preferences."""

from typing import Callable, Optional

from loguru import logger

from readgye.api_client import ApiClient
from readgye.error_handling import (
    ApiError,
    AuthenticationError,
    ValidationError,
    graceful_degradation,
)
from readgye.models import NotificationSettings


MIN_PASSWORD_LENGTH = 6

CONTACT_CATEGORIES = ("service", "account", "payment", "bug", "etc")

LOGIN_REQUIRED_MESSAGE = "로그인이 필요합니다."
PASSWORD_CHANGE_FAILED = "비밀번호 변경에 실패했습니다."
CONTACT_FAILED = "문의 접수에 실패했습니다."
SETTINGS_SAVE_FAILED = "알림 설정 저장에 실패했습니다."


def validate_password_change(current: str, new: str, confirm: str) -> Optional[str]:
    """Return the first validation message, or None if the input is acceptable."""
    if not current.strip():
        return "현재 비밀번호를 입력해 주세요."
    if not new.strip():
        return "새 비밀번호를 입력해 주세요."
    if len(new) < MIN_PASSWORD_LENGTH:
        return f"새 비밀번호는 {MIN_PASSWORD_LENGTH}자 이상이어야 합니다."
    if new != confirm:
        return "새 비밀번호가 일치하지 않습니다."
    if current == new:
        return "현재 비밀번호와 다른 비밀번호를 입력해 주세요."
    return None


def validate_contact(category: Optional[str], title: str, content: str) -> Optional[str]:
    if not category or category not in CONTACT_CATEGORIES:
        return "문의 유형을 선택해 주세요."
    if not title.strip():
        return "제목을 입력해 주세요."
    if not content.strip():
        return "내용을 입력해 주세요."
    return None


class AccountService:
    """Settings operations that need the current bearer token."""

    def __init__(self, api: ApiClient, token_provider: Callable[[], Optional[str]]):
        self.api = api
        self._token_provider = token_provider

    def _require_token(self) -> str:
        token = self._token_provider()
        if not token:
            raise AuthenticationError(LOGIN_REQUIRED_MESSAGE)
        return token

    async def change_password(self, current: str, new: str, confirm: str) -> None:
        """Validate locally, then change the password on the backend.

        Raises:
            ValidationError: Local validation failed
            ApiError: The backend refused the change
        """
        problem = validate_password_change(current, new, confirm)
        if problem:
            raise ValidationError(problem)

        token = self._require_token()
        try:
            await self.api.change_password(token, current, new)
        except ApiError as e:
            raise ApiError(e.status_code, e.detail or PASSWORD_CHANGE_FAILED) from e
        logger.info("Password changed")

    async def submit_contact(self, category: Optional[str], title: str, content: str) -> None:
        """Send a support inquiry (title and content are trimmed)."""
        problem = validate_contact(category, title, content)
        if problem:
            raise ValidationError(problem)

        token = self._require_token()
        try:
            await self.api.submit_contact(token, category, title.strip(), content.strip())
        except ApiError as e:
            raise ApiError(e.status_code, e.detail or CONTACT_FAILED) from e
        logger.info(f"Contact inquiry submitted (category={category})")

    @graceful_degradation(fallback=NotificationSettings)
    async def load_notification_settings(self) -> NotificationSettings:
        """Fetch preferences; any failure falls back to the defaults."""
        token = self._token_provider()
        if not token:
            return NotificationSettings()
        return await self.api.notification_settings(token)

    async def save_notification_settings(self, settings: NotificationSettings) -> None:
        token = self._require_token()
        try:
            await self.api.update_notification_settings(token, settings)
        except ApiError as e:
            raise ApiError(e.status_code, SETTINGS_SAVE_FAILED) from e
