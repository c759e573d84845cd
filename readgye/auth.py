"""Authentication context: session bootstrap, sign-in flows and sign-out.

The AuthContext owns the single ``Session`` value of the client. Every
transition (restore, login, guest provisioning, sign-out) replaces the
value wholesale and notifies the registered listeners, which is how the
notification poller and the chat manager learn that a token appeared or
went away.
"""

from typing import Awaitable, Callable, List, Optional, Union

import httpx
import msgspec
from msgspec import structs
from loguru import logger

from memory.local_storage import TOKEN_KEY, USER_KEY, LocalStorage
from readgye.api_client import ApiClient
from readgye.config import ClientConfig
from readgye.error_handling import ApiError, ReadgyeError
from readgye.logging_config import get_user_logger
from readgye.models import AuthResult, BackendProfile, Session, UserInfo


SessionListener = Callable[[Optional[Session]], Union[None, Awaitable[None]]]

GUEST_USER_ID = "guest"

LOGIN_FAILED_MESSAGE = "이메일 또는 비밀번호가 틀렸습니다."
SIGNUP_FAILED_MESSAGE = "회원가입에 실패했습니다."
SERVER_UNREACHABLE_MESSAGE = "서버에 연결할 수 없습니다."


class AuthContext:
    """Holds the current session and performs every auth transition.

    Args:
        api: Backend API client
        storage: Local persisted storage
        config: Client configuration (guest credentials)
    """

    def __init__(self, api: ApiClient, storage: LocalStorage, config: ClientConfig):
        self.api = api
        self.storage = storage
        self.config = config
        self.is_loading = True
        self._session: Optional[Session] = None
        self._listeners: List[SessionListener] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def user(self) -> Optional[UserInfo]:
        return self._session.user if self._session else None

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with the new session on every change.

        Returns:
            Function that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _set_session(self, session: Optional[Session]) -> None:
        if session == self._session:
            return
        self._session = session
        for listener in list(self._listeners):
            result = listener(session)
            if result is not None:
                await result

    def _persist_user(self, user: UserInfo) -> None:
        self.storage.set_item(USER_KEY, msgspec.json.encode(user).decode())

    # ------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------

    async def bootstrap(self) -> Optional[Session]:
        """Restore the persisted session on start.

        A stored guest user without a token is re-authenticated once against
        the backend. Every failure is logged and leaves the client in a
        degraded state rather than raising.
        """
        try:
            stored_user = self.storage.get_item(USER_KEY)
            stored_token = self.storage.get_item(TOKEN_KEY)
            if stored_user is None:
                logger.info("No stored user, starting logged out")
                return None

            user = msgspec.json.decode(stored_user, type=UserInfo)
            await self._set_session(Session(user=user, token=stored_token))

            if stored_token:
                get_user_logger(user.id, "auth").info("Session restored from storage")
            elif self._is_guest(user):
                logger.info("Guest session without token, re-authenticating with backend")
                await self._login_to_backend(
                    self.config.guest_email,
                    self.config.guest_password,
                    self.config.guest_name,
                )
            else:
                logger.warning(f"Stored user {user.id} has no backend token")
        except (msgspec.DecodeError, ReadgyeError) as e:
            logger.error(f"Failed to load stored user: {e}")
        finally:
            self.is_loading = False
        return self._session

    def _is_guest(self, user: UserInfo) -> bool:
        return self.config.is_guest_configured and user.email == self.config.guest_email

    async def _login_to_backend(self, email: str, password: str, name: str) -> bool:
        """Signup (ignoring "already exists") then login, persisting the token.

        Never raises; returns True when a token was obtained.
        """
        try:
            try:
                await self.api.signup(email, password, name)
            except ApiError as e:
                logger.debug(f"Signup answered HTTP {e.status_code}, continuing with login")

            try:
                token = await self.api.login(email, password)
            except ApiError as e:
                logger.warning(f"Backend login failed: HTTP {e.status_code}")
                return False

            self.storage.set_item(TOKEN_KEY, token)
            current = self._session
            if current is None:
                logger.warning("Session cleared during backend login, dropping token")
                return False
            await self._set_session(structs.replace(current, token=token))

            try:
                profile = await self.api.me(token)
            except (ApiError, httpx.HTTPError, ReadgyeError) as e:
                logger.info(f"Admin flag lookup failed, continuing without it: {e}")
            else:
                await self._apply_admin_flag(profile)

            logger.info("Backend login succeeded, token stored")
            return True
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Backend unreachable, continuing without token: {e}")
            return False

    async def _apply_admin_flag(self, profile: BackendProfile) -> None:
        current = self._session
        if current is None:
            return
        user = structs.replace(current.user, is_admin=bool(profile.is_admin))
        self._persist_user(user)
        await self._set_session(structs.replace(current, user=user))

    # ------------------------------------------------------------------
    # Sign-in flows
    # ------------------------------------------------------------------

    async def sign_in_with_email(self, email: str, password: str) -> AuthResult:
        """Log in with email/password and load the backend profile."""
        try:
            try:
                token = await self.api.login(email, password)
            except ApiError as e:
                return AuthResult(success=False, error=e.detail or LOGIN_FAILED_MESSAGE)

            self.storage.set_item(TOKEN_KEY, token)
            try:
                profile = await self.api.me(token)
            except ApiError as e:
                logger.warning(f"Profile lookup failed after login: HTTP {e.status_code}")
                user = self.user or UserInfo(id=email, name=email.split("@")[0], email=email)
            else:
                user = UserInfo(
                    id=profile.id,
                    name=profile.name,
                    email=profile.email,
                    is_admin=bool(profile.is_admin),
                )

            self._persist_user(user)
            await self._set_session(Session(user=user, token=token))
            get_user_logger(user.id, "auth").info("Signed in with email")
            return AuthResult(success=True)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Email sign-in failed: {e}")
            return AuthResult(success=False, error=SERVER_UNREACHABLE_MESSAGE)

    async def sign_up_with_email(self, email: str, password: str, name: str) -> AuthResult:
        """Create an account, then sign in with it."""
        try:
            await self.api.signup(email, password, name)
        except ApiError as e:
            return AuthResult(success=False, error=e.detail or SIGNUP_FAILED_MESSAGE)
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Email sign-up failed: {e}")
            return AuthResult(success=False, error=SERVER_UNREACHABLE_MESSAGE)
        return await self.sign_in_with_email(email, password)

    async def sign_in_as_guest(self) -> bool:
        """Provision the shared guest account."""
        guest = UserInfo(
            id=GUEST_USER_ID,
            name=self.config.guest_name,
            email=self.config.guest_email,
        )
        self._persist_user(guest)
        await self._set_session(Session(user=guest))
        return await self._login_to_backend(
            self.config.guest_email,
            self.config.guest_password,
            self.config.guest_name,
        )

    async def sign_in_with_google(
        self,
        google_id: str,
        email: str,
        name: str = "",
        picture: str = ""
    ) -> bool:
        """Sign in with a Google identity obtained by the host platform."""
        user = UserInfo(id=google_id, name=name, email=email, picture=picture)
        self._persist_user(user)
        await self._set_session(Session(user=user))
        logger.info(f"Google identity accepted for {email}")
        return await self._login_to_backend(email, f"google_{google_id}", name)

    async def sign_out(self) -> None:
        """Forget the session and remove both persisted entries."""
        user_id = self.user.id if self.user else None
        await self._set_session(None)
        self.storage.remove_item(USER_KEY)
        self.storage.remove_item(TOKEN_KEY)
        logger.info(f"Signed out user {user_id}")

    async def fetch_backend_profile(self) -> Optional[BackendProfile]:
        """Return the backend profile, or None on any failure."""
        try:
            token = self.token or self.storage.get_item(TOKEN_KEY)
            if not token:
                logger.info("No backend token available")
                return None
            return await self.api.me(token)
        except ApiError as e:
            logger.info(f"Failed to fetch backend profile: HTTP {e.status_code}")
        except (httpx.HTTPError, ReadgyeError) as e:
            logger.warning(f"Error fetching backend profile: {e}")
        return None
