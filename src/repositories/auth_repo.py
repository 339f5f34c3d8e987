"""Blog backend auth endpoints (legacy token path).

인증 서비스 이전의 백엔드 자체 로그인 경로입니다.
백엔드가 발급한 토큰은 TokenStorage("token")에 보관되며,
인증 서비스 세션이 없을 때만 HTTP 클라이언트가 사용합니다.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from src.adapters.blog_api import BlogApiClient, BlogApiError
from src.auth.store import SessionStore
from src.models.user import UserProfile, UserView

logger = logging.getLogger(__name__)


class AuthRepository:
    """Wraps ``/auth/*`` endpoints of the blog backend."""

    def __init__(self, client: BlogApiClient, store: SessionStore) -> None:
        self.client = client
        self.store = store

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        data = await self.client.post("/auth/login", json_body={"email": email, "password": password})
        token = data.get("token")
        if token:
            self.client.store_legacy_token(token)
        return data

    async def register(self, email: str, password: str, name: Optional[str] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"email": email, "password": password}
        if name:
            body["name"] = name
        data = await self.client.post("/auth/register", json_body=body)
        token = data.get("token")
        if token:
            self.client.store_legacy_token(token)
        return data

    async def get_current_user(self) -> UserProfile:
        data = await self.client.get("/auth/me")
        user_payload = data.get("user") if isinstance(data.get("user"), dict) else data
        return UserProfile.from_backend(user_payload)

    async def logout(self) -> None:
        try:
            await self.client.post("/auth/logout")
        finally:
            self.client.clear_legacy_token()

    async def complete_legacy_login(self, token: str) -> UserView:
        """Persist a backend-issued token and load the user it belongs to.

        실패 시 저장한 토큰을 제거하고 예외를 다시 발생시킵니다.
        """
        self.client.store_legacy_token(token)
        try:
            profile = await self.get_current_user()
        except BlogApiError:
            self.client.clear_legacy_token()
            raise
        user = profile.to_view()
        self.store.update_user(user)
        logger.info("Legacy login completed for user %s", user.id)
        return user
