"""Unread-notification polling and the notification list.

The poller ticks on a fixed interval while a bearer token is present.
Ticks never overlap: a tick that fires while the previous request is
still outstanding is dropped, not queued.
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional, Set

import httpx
from loguru import logger

from readgye.api_client import ApiClient
from readgye.config import DEFAULT_POLL_INTERVAL_SECONDS
from readgye.error_handling import ApiError, ReadgyeError
from readgye.models import NotificationRecord, Session


AlertSink = Callable[[str, str], None]

BATCH_ALERT_TITLE = "분석 완료"


def log_alert(title: str, message: str) -> None:
    """Default alert sink: write the alert to the log."""
    logger.info(f"[ALERT] {title}: {message}")


def batch_alert_message(count: int) -> str:
    return f"{count}건의 계약서 분석이 완료되었습니다."


class NotificationPoller:
    """Polls ``/api/notifications/unread`` and surfaces completed analyses.

    Args:
        api: Backend API client
        alert: Callable receiving ``(title, message)`` for user-visible alerts
        interval: Seconds between ticks (fixed, no backoff)
    """

    def __init__(
        self,
        api: ApiClient,
        alert: Optional[AlertSink] = None,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS
    ):
        self.api = api
        self.alert = alert or log_alert
        self.interval = interval
        self.unread_count = 0
        self._token: Optional[str] = None
        self._polling = False
        self._timer: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

    @property
    def is_polling(self) -> bool:
        """True while a tick's request is outstanding."""
        return self._polling

    @property
    def is_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    async def poll_once(self) -> None:
        """Run one polling tick.

        Returns immediately when there is no token or another tick still
        holds the reentrancy flag.
        """
        token = self._token
        if not token or self._polling:
            return

        self._polling = True
        try:
            try:
                notifications = await self.api.unread_notifications(token)
            except ApiError as e:
                logger.debug(f"Unread notifications answered HTTP {e.status_code}")
                self.unread_count = 0
                return

            self.unread_count = len(notifications)
            if not notifications:
                return

            self._surface(notifications)
            await self._mark_all_read(token)
            self.unread_count = 0
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Failed to poll notifications: {e}")
        finally:
            self._polling = False

    def _surface(self, notifications: List[NotificationRecord]) -> None:
        if len(notifications) == 1:
            self.alert(notifications[0].title, notifications[0].message)
        else:
            self.alert(BATCH_ALERT_TITLE, batch_alert_message(len(notifications)))

    async def _mark_all_read(self, token: str) -> None:
        try:
            await self.api.mark_all_notifications_read(token)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Failed to mark notifications as read: {e}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def on_session_change(self, session: Optional[Session]) -> None:
        """Rebind the poller to the token of ``session``.

        The timer is torn down on every change and re-established only when
        a token is present.
        """
        token = session.token if session else None
        if token == self._token and (token is None or self.is_running):
            return

        self.stop()
        self._token = token
        if token is None:
            self.unread_count = 0
            return
        self.start()

    def start(self) -> None:
        """Start the timer (an immediate tick, then one per interval)."""
        if self._token is None:
            raise ReadgyeError("Cannot start notification polling without a token")
        if self.is_running:
            return
        self._timer = asyncio.get_running_loop().create_task(self._run_timer())
        logger.debug(f"Notification polling started (interval={self.interval}s)")

    def stop(self) -> None:
        """Cancel the timer. Ticks already in flight are left to complete."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            logger.debug("Notification polling stopped")

    async def _run_timer(self) -> None:
        while True:
            tick = asyncio.get_running_loop().create_task(self.poll_once())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self.interval)

    async def drain(self) -> None:
        """Wait for every in-flight tick to finish."""
        if self._ticks:
            await asyncio.gather(*list(self._ticks), return_exceptions=True)


def format_notification_time(created_at: str) -> str:
    """Format an ISO timestamp as ``M월 D일 HH:MM`` (``-`` if unparseable)."""
    try:
        moment = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return "-"
    return f"{moment.month}월 {moment.day}일 {moment.hour:02d}:{moment.minute:02d}"


class NotificationCenter:
    """Full notification list with read-state management."""

    def __init__(self, api: ApiClient, token_provider: Callable[[], Optional[str]]):
        self.api = api
        self._token_provider = token_provider
        self.items: List[NotificationRecord] = []

    async def refresh(self) -> List[NotificationRecord]:
        """Reload the list; any failure leaves an empty list."""
        token = self._token_provider()
        if not token:
            self.items = []
            return self.items
        try:
            self.items = await self.api.notifications(token)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.info(f"Failed to load notifications: {e}")
            self.items = []
        return self.items

    @property
    def unread(self) -> List[NotificationRecord]:
        return [item for item in self.items if not item.is_read]

    async def mark_read(self, notification_id: str) -> Optional[NotificationRecord]:
        """Mark one notification read and return it (with its document link)."""
        token = self._token_provider()
        if not token:
            return None

        target = next((item for item in self.items if item.id == notification_id), None)
        if target is not None and target.is_read:
            return target

        try:
            await self.api.mark_notification_read(token, notification_id)
        except ApiError as e:
            # The list still shows it as read, whatever the backend answered
            logger.info(f"Marking notification {notification_id} read answered HTTP {e.status_code}")
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Failed to mark notification {notification_id} read: {e}")
            return target

        for item in self.items:
            if item.id == notification_id:
                item.is_read = True
        return target

    async def mark_all_read(self) -> None:
        token = self._token_provider()
        if not token:
            return
        try:
            await self.api.mark_all_notifications_read(token)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.info(f"Failed to mark all notifications read: {e}")
            return
        for item in self.items:
            item.is_read = True
