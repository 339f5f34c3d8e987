"""OAuth callback handling.

리다이렉트 URL의 fragment(또는 query)에서 토큰을 추출하여 세션을 구성하고,
사용자를 다음 화면으로 이동시키는 one-shot 상태 머신입니다.

상태 전이:
- pending → token_extracted → session_established → redirected
- pending → no_tokens → existing_session_check → redirected
- (any) → failed → redirected (로그인 화면)

핸들러가 몇 번 재실행되더라도 navigation/알림 쌍은 최대 한 번만 발생합니다.
"""
from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlsplit

from src.adapters.identity_provider import IdentityProviderClient, IdentityProviderError
from src.auth.store import AuthState
from src.server.settings import settings
from src.services.notifications import NotificationCenter, NotificationLevel

logger = logging.getLogger(__name__)

Navigate = Callable[[str], Any]


class CallbackState(str, Enum):
    PENDING = "pending"
    TOKEN_EXTRACTED = "token_extracted"
    SESSION_ESTABLISHED = "session_established"
    NO_TOKENS = "no_tokens"
    EXISTING_SESSION_CHECK = "existing_session_check"
    FAILED = "failed"
    REDIRECTED = "redirected"


def parse_redirect_params(url: str) -> Dict[str, str]:
    """Collect query and fragment parameters; fragment values win."""
    parts = urlsplit(url)
    params = dict(parse_qsl(parts.query))
    params.update(parse_qsl(parts.fragment))
    return params


class OAuthCallbackHandler:
    """Completes an OAuth redirect exactly once."""

    def __init__(
        self,
        provider: IdentityProviderClient,
        notifier: NotificationCenter,
        navigate: Navigate,
        *,
        landing_path: Optional[str] = None,
        login_path: Optional[str] = None,
    ) -> None:
        self.provider = provider
        self.notifier = notifier
        self.navigate = navigate
        self.landing_path = landing_path or settings.LANDING_PATH
        self.login_path = login_path or settings.LOGIN_PATH
        self.state = CallbackState.PENDING
        self.history: List[CallbackState] = [CallbackState.PENDING]
        self.destination: Optional[str] = None
        self._navigated = False
        self._task: Optional[asyncio.Future] = None

    async def handle(self, url: str) -> Optional[str]:
        """Process the redirect URL; repeated calls share the first run."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._run(url))
        return await asyncio.shield(self._task)

    def on_store_change(self, state: AuthState) -> None:
        """Store listener: navigate once the session appears out-of-band."""
        if self.state in (CallbackState.TOKEN_EXTRACTED, CallbackState.SESSION_ESTABLISHED):
            return
        if state.is_authenticated and state.user is not None:
            logger.info("Auth state changed - user %s is now authenticated", state.user.id)
            self._finish(self.landing_path)

    def _transition(self, state: CallbackState) -> None:
        if self.state is CallbackState.REDIRECTED:
            return
        self.state = state
        self.history.append(state)

    def _finish(
        self,
        path: str,
        level: Optional[NotificationLevel] = None,
        message: Optional[str] = None,
    ) -> bool:
        # check-and-set은 await 없이 수행되어야 함
        if self._navigated:
            return False
        self._navigated = True
        if message and level:
            self.notifier.push(level, message)
        self.destination = path
        self._transition(CallbackState.REDIRECTED)
        self.navigate(path)
        return True

    def _fail(self, message: str) -> None:
        if self._navigated:
            return
        self._transition(CallbackState.FAILED)
        self._finish(self.login_path, "error", message)

    async def _run(self, url: str) -> Optional[str]:
        logger.info("Processing OAuth callback...")
        params = parse_redirect_params(url)
        access_token = params.get("access_token")
        refresh_token = params.get("refresh_token")

        if access_token and refresh_token:
            self._transition(CallbackState.TOKEN_EXTRACTED)
            try:
                session = await self.provider.set_session(
                    access_token,
                    refresh_token,
                    recovery=params.get("type") == "recovery",
                )
            except IdentityProviderError as exc:
                logger.error("Error setting session: %s", exc)
                self._fail(f"Authentication failed: {exc.message}")
                return self.destination

            logger.info("OAuth session set for user %s", session.user_id)
            self._transition(CallbackState.SESSION_ESTABLISHED)
            self._finish(self.landing_path, "success", "Welcome back!")
            return self.destination

        if params.get("error"):
            description = params.get("error_description") or params["error"]
            logger.error("Provider returned OAuth error: %s", description)
            self._fail(f"Authentication failed: {description}")
            return self.destination

        self._transition(CallbackState.NO_TOKENS)
        self._transition(CallbackState.EXISTING_SESSION_CHECK)
        try:
            session = await self.provider.get_session()
        except IdentityProviderError as exc:
            logger.error("Session error: %s", exc)
            self._fail("Authentication failed")
            return self.destination

        if session is not None:
            logger.info("Found existing session for user %s", session.user_id)
            self._finish(self.landing_path)
        else:
            logger.info("No session found")
            self._finish(self.login_path, "error", "Authentication incomplete. Please try again.")
        return self.destination
