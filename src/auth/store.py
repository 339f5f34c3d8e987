"""Process-wide session state store.

인증 상태의 단일 소유자입니다.
- 상태 변경은 reducer(`reduce`)를 통해서만 이루어지며, 변경마다 version이 증가합니다.
- 뷰는 토큰을 직접 보관하지 않고 항상 이 store를 통해 읽습니다.
- 인증 서비스의 세션 변경 이벤트를 구독하여 사용자 view-model을 갱신합니다.

초기화와 이벤트 기반 갱신은 경쟁할 수 있으나, 두 경로 모두 같은 세션 소스에서
파생되므로 last-writer-wins로 수렴합니다.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict

from src.adapters.identity_provider import (
    AuthChangeEvent,
    IdentityProviderClient,
    IdentityProviderError,
    Subscription,
)
from src.models.session import ProviderUser, Session
from src.models.user import UserView
from src.server.settings import settings
from src.services.notifications import NotificationCenter

logger = logging.getLogger(__name__)


class AuthState(BaseModel):
    """Immutable snapshot of the authentication state."""

    model_config = ConfigDict(frozen=True)

    user: Optional[UserView] = None
    session: Optional[Session] = None
    loading: bool = True
    is_authenticated: bool = False
    version: int = 0


class SetSession(BaseModel):
    session: Optional[Session] = None
    user: Optional[UserView] = None


class SetLoading(BaseModel):
    loading: bool


class Logout(BaseModel):
    pass


Action = Union[SetSession, SetLoading, Logout]
StateListener = Callable[[AuthState], Any]


def reduce(state: AuthState, action: Action) -> AuthState:
    """Pure transition function for the auth state."""
    if isinstance(action, SetSession):
        changes: Dict[str, Any] = {
            "session": action.session,
            "user": action.user,
            "is_authenticated": action.session is not None,
            "loading": False,
        }
    elif isinstance(action, SetLoading):
        changes = {"loading": action.loading}
    elif isinstance(action, Logout):
        changes = {
            "session": None,
            "user": None,
            "is_authenticated": False,
            "loading": False,
        }
    else:
        return state
    changes["version"] = state.version + 1
    return state.model_copy(update=changes)


class RegistrationResult(BaseModel):
    """회원가입 결과.

    confirmation_required가 True이면 오류가 아니라 "이메일 확인" 성공 케이스입니다.
    """
    user: Optional[ProviderUser] = None
    session: Optional[Session] = None
    confirmation_required: bool = False


class SessionStore:
    """Single-writer auth state container layered over the identity provider."""

    def __init__(
        self,
        provider: IdentityProviderClient,
        notifier: NotificationCenter,
        *,
        bootstrap_timeout: Optional[float] = None,
    ) -> None:
        self.provider = provider
        self.notifier = notifier
        self.bootstrap_timeout = (
            settings.SESSION_BOOTSTRAP_TIMEOUT if bootstrap_timeout is None else bootstrap_timeout
        )
        self._state = AuthState()
        self._listeners: List[StateListener] = []
        self._subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def user(self) -> Optional[UserView]:
        return self._state.user

    @property
    def session(self) -> Optional[Session]:
        return self._state.session

    @property
    def is_authenticated(self) -> bool:
        return self._state.is_authenticated

    @property
    def loading(self) -> bool:
        return self._state.loading

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a state listener; returns a function that removes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def dispatch(self, action: Action) -> AuthState:
        self._state = reduce(self._state, action)
        for listener in list(self._listeners):
            listener(self._state)
        return self._state

    def _publish_session(self, session: Session) -> None:
        self.dispatch(SetSession(session=session, user=UserView.from_session(session)))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to provider events, then bootstrap the session."""
        if self._subscription is None:
            self._subscription = self.provider.on_auth_state_change(self.handle_auth_event)
        await self.initialize()

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    async def initialize(self) -> AuthState:
        """Load the current session, failing safe to "no session" on timeout."""
        logger.info("Initializing session...")
        try:
            session = await asyncio.wait_for(
                self.provider.get_session(),
                timeout=self.bootstrap_timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Session bootstrap timed out after %ss", self.bootstrap_timeout)
            return self.dispatch(SetSession())
        except IdentityProviderError as exc:
            logger.error("Error getting session: %s", exc)
            return self.dispatch(SetSession())

        if session is None:
            logger.info("No session found")
            return self.dispatch(SetSession())

        logger.info("Session found for user %s", session.user_id)
        self._publish_session(session)
        return self._state

    def handle_auth_event(self, event: str, session: Optional[Session]) -> None:
        logger.info("Auth state changed: %s (%s)", event, session.user_id if session else "no user")

        if event in (
            AuthChangeEvent.INITIAL_SESSION.value,
            AuthChangeEvent.SIGNED_IN.value,
            AuthChangeEvent.TOKEN_REFRESHED.value,
        ):
            if session is not None:
                self._publish_session(session)
        elif event == AuthChangeEvent.SIGNED_OUT.value:
            self.dispatch(SetSession())
        elif event == AuthChangeEvent.PASSWORD_RECOVERY.value:
            logger.info("Password recovery initiated")
        elif event == AuthChangeEvent.USER_UPDATED.value:
            logger.info("User metadata updated")
        else:
            logger.info("Unhandled auth event: %s", event)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str) -> Session:
        try:
            session = await self.provider.sign_in_with_password(email, password)
        except IdentityProviderError as exc:
            self.notifier.error(exc.message or "Login failed")
            raise

        # OAuth 로그인의 성공 알림은 콜백 핸들러가 담당합니다.
        self.notifier.success("Login successful!")
        return session

    async def register(
        self,
        email: str,
        password: str,
        name: Optional[str] = None,
    ) -> RegistrationResult:
        logger.info("Attempting to register %s", email)
        metadata = {"name": name} if name else {}
        try:
            result = await self.provider.sign_up(email, password, metadata)
        except IdentityProviderError as exc:
            logger.error("Registration failed: %s", exc)
            self.notifier.error(exc.message or "Registration failed")
            raise

        if result.session is None:
            self.notifier.success("Please check your email to confirm your account!")
            return RegistrationResult(user=result.user, confirmation_required=True)

        self._publish_session(result.session)
        self.notifier.success("Registration successful!")
        return RegistrationResult(user=result.user, session=result.session)

    def login_with_oauth(
        self,
        provider: Optional[str] = None,
        redirect_to: Optional[str] = None,
    ) -> str:
        """Return the authorize URL; the callback handler completes the flow."""
        provider_name = provider or settings.AUTH_OAUTH_DEFAULT_PROVIDER
        logger.info("Initiating %s OAuth...", provider_name)
        try:
            return self.provider.sign_in_with_oauth(
                provider_name,
                redirect_to=redirect_to,
                query_params={"access_type": "offline", "prompt": "consent"},
            )
        except IdentityProviderError as exc:
            self.notifier.error(exc.message or f"{provider_name} login failed")
            raise

    async def logout(self) -> None:
        try:
            await self.provider.sign_out()
        except IdentityProviderError as exc:
            logger.error("Logout error: %s", exc)
        self.dispatch(Logout())
        self.notifier.success("Logged out successfully")

    def update_user(self, user: UserView) -> AuthState:
        return self.dispatch(SetSession(session=self._state.session, user=user))

    async def update_profile_metadata(self, metadata: Dict[str, Any]) -> UserView:
        """Persist user metadata at the provider and refresh the view-model."""
        await self.provider.update_user(metadata)
        session = await self.provider.get_session()
        if session is None:
            raise IdentityProviderError("Not signed in", status_code=401)
        user = UserView.from_session(session)
        self.dispatch(SetSession(session=session, user=user))
        return user

    async def refresh_session(self) -> Optional[Session]:
        """Refresh once via the provider; clears the state on failure."""
        try:
            return await self.provider.refresh_session()
        except IdentityProviderError as exc:
            logger.warning("Session refresh failed: %s", exc)
            self.dispatch(Logout())
            return None

    def clear_session(self) -> None:
        self.dispatch(Logout())

    async def _current_session(self) -> Optional[Session]:
        try:
            return await self.provider.get_session()
        except IdentityProviderError as exc:
            logger.warning("Cannot read current session: %s", exc)
            return None

    async def get_access_token(self) -> Optional[str]:
        session = await self._current_session()
        return session.access_token if session else None

    async def get_refresh_token(self) -> Optional[str]:
        session = await self._current_session()
        return session.refresh_token if session else None

    async def is_session_valid(self) -> bool:
        return await self._current_session() is not None
