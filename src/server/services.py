"""Application service wiring.

프로세스 전역에서 공유되는 인증 서비스 클라이언트, 세션 store, HTTP 클라이언트,
저장소(repository)들을 한곳에서 구성합니다.
"""
from __future__ import annotations

import logging
from typing import Optional

import httpx

from src.adapters.blog_api import BlogApiClient
from src.adapters.identity_provider import IdentityProviderClient
from src.auth.callback import OAuthCallbackHandler
from src.auth.store import SessionStore
from src.background.scheduler import shutdown_scheduler, start_scheduler
from src.repositories.auth_repo import AuthRepository
from src.repositories.post_repo import PostRepository
from src.repositories.user_repo import UserRepository
from src.services.notifications import NotificationCenter

logger = logging.getLogger(__name__)


class AppServices:
    """Container for the process-wide client components."""

    def __init__(
        self,
        provider: Optional[IdentityProviderClient] = None,
        *,
        notifier: Optional[NotificationCenter] = None,
        blog_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.notifier = notifier or NotificationCenter()
        self.provider = provider or IdentityProviderClient()
        self.store = SessionStore(self.provider, self.notifier)
        self.blog_client = BlogApiClient(
            self.store,
            on_session_expired=self._on_session_expired,
            transport=blog_transport,
        )
        self.auth_repo = AuthRepository(self.blog_client, self.store)
        self.post_repo = PostRepository(self.blog_client)
        self.user_repo = UserRepository(self.blog_client)

    def _on_session_expired(self) -> None:
        self.notifier.error("Session expired. Please log in again.")

    def callback_handler(self) -> OAuthCallbackHandler:
        """Create the handler for one callback request.

        navigation 중복 방지(latch)는 핸들러 내부에서 처리하며, 요청마다 새 핸들러를 사용합니다.
        """
        handler = OAuthCallbackHandler(self.provider, self.notifier, navigate=self._log_navigation)
        unsubscribe = self.store.subscribe(handler.on_store_change)
        handler.navigate = _unsubscribing(self._log_navigation, unsubscribe)
        return handler

    @staticmethod
    def _log_navigation(path: str) -> None:
        logger.info("Navigating to %s", path)

    async def startup(self) -> None:
        await self.store.start()
        start_scheduler(self.store)

    def shutdown(self) -> None:
        shutdown_scheduler()
        self.store.stop()


def _unsubscribing(navigate, unsubscribe):
    def _navigate(path: str) -> None:
        unsubscribe()
        navigate(path)

    return _navigate
