"""
Readgye Client - wiring of the client-side components.

Startup order:
    AuthContext.bootstrap() -> token available -> NotificationPoller / ChatSessionManager

The poller and the chat manager subscribe to the auth context, so every
session transition (login, guest provisioning, sign-out) is propagated to
them without any component reading shared globals.
"""

from typing import Optional

import httpx
from loguru import logger

from memory.local_storage import LocalStorage
from readgye.account import AccountService
from readgye.api_client import ApiClient
from readgye.archive import ArchiveService
from readgye.auth import AuthContext
from readgye.chat import ChatSessionManager
from readgye.config import ClientConfig, load_config
from readgye.models import Session
from readgye.notifications import AlertSink, NotificationCenter, NotificationPoller
from tools.file_validator import FileValidator


class ReadgyeClient:
    """Owns one API client, one storage and every stateful component.

    Args:
        config: Client configuration
        storage: Optional storage instance (defaults to ``config.storage_path``)
        transport: Optional httpx transport for the API client
        alert: Optional sink for notification alerts
        auto_poll: Start the notification poller whenever a token is present
    """

    def __init__(
        self,
        config: ClientConfig,
        storage: Optional[LocalStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        alert: Optional[AlertSink] = None,
        auto_poll: bool = True
    ):
        self.config = config
        self.storage = storage or LocalStorage(config.storage_path)
        self.api = ApiClient(
            config.api_base_url,
            timeout=config.request_timeout_seconds,
            transport=transport,
        )
        self.auth = AuthContext(self.api, self.storage, config)
        self.poller = NotificationPoller(
            self.api, alert=alert, interval=config.poll_interval_seconds
        )
        self.chat = ChatSessionManager(self.api, lambda: self.auth.token)
        self.notifications = NotificationCenter(self.api, lambda: self.auth.token)
        self.archive = ArchiveService(
            self.api,
            lambda: self.auth.token,
            validator=FileValidator(
                max_size_mb=config.max_upload_mb,
                max_pages=config.max_pdf_pages,
            ),
        )
        self.account = AccountService(self.api, lambda: self.auth.token)

        if auto_poll:
            self.auth.subscribe(self.poller.on_session_change)
        self.auth.subscribe(self.chat.on_session_change)

    async def start(self) -> Optional[Session]:
        """Bootstrap the persisted session."""
        session = await self.auth.bootstrap()
        logger.info(
            f"Client started (signed_in={session is not None}, "
            f"token={'yes' if self.auth.token else 'no'})"
        )
        return session

    async def aclose(self) -> None:
        self.poller.stop()
        await self.poller.drain()
        await self.api.aclose()

    async def __aenter__(self) -> "ReadgyeClient":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def create_client(
    config: Optional[ClientConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    alert: Optional[AlertSink] = None,
    auto_poll: bool = True
) -> ReadgyeClient:
    """Factory function to create a client with environment-based configuration.

    Args:
        config: Optional configuration (loaded from the environment if omitted)
        transport: Optional httpx transport
        alert: Optional alert sink for the notification poller
        auto_poll: Whether the poller follows the session automatically

    Returns:
        Configured ReadgyeClient instance
    """
    return ReadgyeClient(
        config or load_config(),
        transport=transport,
        alert=alert,
        auto_poll=auto_poll,
    )
