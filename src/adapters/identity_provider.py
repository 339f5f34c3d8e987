"""Async client for the external identity provider (GoTrue-compatible REST).

토큰의 발급/검증/갱신은 전적으로 인증 서비스가 담당합니다.
이 어댑터는 다음을 제공합니다:
- 세션 조회 (영속화된 세션 복원 및 만료 시 자동 갱신)
- 이메일/비밀번호 로그인, 회원가입
- OAuth authorize URL 생성, 리다이렉트 토큰으로 세션 구성
- 세션 갱신, 로그아웃, 사용자 metadata 수정, 비밀번호 재설정 요청
- 세션 변경 이벤트 구독 채널
"""
from __future__ import annotations

import asyncio
import inspect
import json
import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from src.adapters.token_storage import TokenStorage
from src.auth.tokens import decode_claims
from src.models.session import ProviderUser, Session
from src.server.settings import settings

logger = logging.getLogger(__name__)


class AuthChangeEvent(str, Enum):
    """Session-change notifications emitted to subscribers."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    SIGNED_OUT = "SIGNED_OUT"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"
    USER_UPDATED = "USER_UPDATED"


AuthStateCallback = Callable[[str, Optional[Session]], Any]


class IdentityProviderError(RuntimeError):
    """Raised when the identity provider rejects a request or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SignUpResult(BaseModel):
    """회원가입 결과. 이메일 확인이 필요한 경우 session은 None입니다."""
    user: Optional[ProviderUser] = None
    session: Optional[Session] = None


class Subscription:
    """Handle returned by ``on_auth_state_change``; call ``unsubscribe`` to cancel."""

    def __init__(self, provider: "IdentityProviderClient", callback: AuthStateCallback) -> None:
        self.id = uuid.uuid4().hex
        self.callback = callback
        self._provider = provider

    @property
    def active(self) -> bool:
        return self.id in self._provider._subscribers

    def unsubscribe(self) -> None:
        self._provider._subscribers.pop(self.id, None)


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return response.text[:200] or f"HTTP {response.status_code}"
    if isinstance(data, dict):
        for key in ("error_description", "msg", "message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


class IdentityProviderClient:
    """Thin wrapper around the identity provider REST API."""

    SESSION_STORAGE_KEY = "auth-session"

    def __init__(
        self,
        base_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        *,
        storage: Optional[TokenStorage] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url if base_url is not None else settings.AUTH_PROVIDER_URL
        self.anon_key = anon_key if anon_key is not None else settings.AUTH_PROVIDER_ANON_KEY
        self.storage = storage or TokenStorage(settings.SESSION_STORAGE_PATH)
        self.timeout = timeout or settings.AUTH_PROVIDER_TIMEOUT or 10.0
        self._transport = transport
        self._session: Optional[Session] = None
        self._restored = False
        self._subscribers: Dict[str, Subscription] = {}

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _build_url(self, path: str) -> str:
        if not self.base_url:
            raise IdentityProviderError("AUTH_PROVIDER_URL is not configured.")
        base = self.base_url.rstrip("/")
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base}/auth/v1{path}"

    def _build_headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        headers: Dict[str, str] = {"Accept": "application/json"}
        if self.anon_key:
            headers["apikey"] = self.anon_key
        bearer = access_token or self.anon_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        access_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = self._build_url(path)
        headers = self._build_headers(access_token)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.request(
                    method,
                    url,
                    json=json_body,
                    params=params,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.error("Identity provider request failed for %s %s: %s", method, url, exc)
            raise IdentityProviderError("Identity provider is unreachable") from exc

        if response.status_code >= 400:
            message = _error_message(response)
            logger.warning(
                "Identity provider responded with status %s for %s %s: %s",
                response.status_code,
                method,
                url,
                message,
            )
            raise IdentityProviderError(message, status_code=response.status_code)

        if not response.content:
            return {}

        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise IdentityProviderError("Invalid JSON response from identity provider") from exc
        return data if isinstance(data, dict) else {}

    # ------------------------------------------------------------------
    # Session cache
    # ------------------------------------------------------------------

    def _save_session(self, session: Session) -> None:
        self._session = session
        self.storage.set(self.SESSION_STORAGE_KEY, session.model_dump(mode="json"))

    def _remove_session(self) -> None:
        self._session = None
        self.storage.remove(self.SESSION_STORAGE_KEY)

    def _restore_session(self) -> Optional[Session]:
        payload = self.storage.get(self.SESSION_STORAGE_KEY)
        if not isinstance(payload, dict):
            return None
        try:
            return Session.model_validate(payload)
        except ValueError as exc:
            logger.warning("Discarding invalid persisted session: %s", exc)
            self.storage.remove(self.SESSION_STORAGE_KEY)
            return None

    async def get_session(self) -> Optional[Session]:
        """Return the current session, refreshing it when expired.

        최초 호출 시 저장소에서 세션을 복원하고 INITIAL_SESSION 이벤트를 발행합니다.
        """
        if not self._restored:
            self._restored = True
            if self._session is None:
                self._session = self._restore_session()
            await self._notify(AuthChangeEvent.INITIAL_SESSION, self._session)

        session = self._session
        if session is None:
            return None

        if session.is_expired(settings.SESSION_REFRESH_SKEW_SECONDS):
            try:
                return await self.refresh_session(session.refresh_token)
            except IdentityProviderError as exc:
                logger.warning("Expired session could not be refreshed: %s", exc)
                return None
        return session

    async def get_session_with_retry(self, max_retries: Optional[int] = None) -> Optional[Session]:
        """Retry session retrieval with a linear back-off (1s, 2s, ...)."""
        attempts = max(1, max_retries or settings.SESSION_RETRY_ATTEMPTS)
        for attempt in range(attempts):
            try:
                return await self.get_session()
            except IdentityProviderError as exc:
                logger.warning("Session retrieval attempt %s failed: %s", attempt + 1, exc)
                if attempt == attempts - 1:
                    raise
                await asyncio.sleep(attempt + 1)
        return None

    # ------------------------------------------------------------------
    # Auth operations
    # ------------------------------------------------------------------

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        data = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json_body={"email": email, "password": password},
        )
        session = Session.from_provider(data)
        self._save_session(session)
        logger.info("Signed in user %s", session.user_id)
        await self._notify(AuthChangeEvent.SIGNED_IN, session)
        return session

    async def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> SignUpResult:
        """Register a new account.

        이메일 확인이 필요한 프로젝트에서는 사용자만 반환되고 세션은 생성되지 않습니다.
        """
        data = await self._request(
            "POST",
            "/signup",
            json_body={"email": email, "password": password, "data": metadata or {}},
        )

        if data.get("access_token"):
            session = Session.from_provider(data)
            self._save_session(session)
            await self._notify(AuthChangeEvent.SIGNED_IN, session)
            return SignUpResult(user=session.user, session=session)

        user_payload = data.get("user") if isinstance(data.get("user"), dict) else data
        user = ProviderUser.from_provider(user_payload) if user_payload.get("id") else None
        return SignUpResult(user=user, session=None)

    def sign_in_with_oauth(
        self,
        provider: str,
        redirect_to: Optional[str] = None,
        query_params: Optional[Dict[str, str]] = None,
    ) -> str:
        """Build the provider authorize URL the user must be redirected to."""
        params: Dict[str, str] = {
            "provider": provider,
            "redirect_to": redirect_to or settings.AUTH_REDIRECT_URL,
        }
        if query_params:
            params.update(query_params)
        return f"{self._build_url('/authorize')}?{urlencode(params)}"

    async def set_session(
        self,
        access_token: str,
        refresh_token: str,
        *,
        recovery: bool = False,
    ) -> Session:
        """Materialize a session from a token pair (OAuth / recovery redirect)."""
        claims = decode_claims(access_token) or {}
        exp = claims.get("exp")

        if isinstance(exp, (int, float)) and exp <= time.time():
            return await self.refresh_session(refresh_token)

        user_payload = await self._request("GET", "/user", access_token=access_token)
        session = Session(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=int(exp) if isinstance(exp, (int, float)) else None,
            user=ProviderUser.from_provider(user_payload),
        )
        self._save_session(session)
        await self._notify(AuthChangeEvent.SIGNED_IN, session)
        if recovery:
            await self._notify(AuthChangeEvent.PASSWORD_RECOVERY, session)
        return session

    async def refresh_session(self, refresh_token: Optional[str] = None) -> Session:
        token = refresh_token or (self._session.refresh_token if self._session else None)
        if not token:
            raise IdentityProviderError("No refresh token available")

        try:
            data = await self._request(
                "POST",
                "/token",
                params={"grant_type": "refresh_token"},
                json_body={"refresh_token": token},
            )
        except IdentityProviderError:
            had_session = self._session is not None
            self._remove_session()
            if had_session:
                await self._notify(AuthChangeEvent.SIGNED_OUT, None)
            raise

        session = Session.from_provider(data)
        self._save_session(session)
        logger.info("Refreshed session for user %s (expires_at=%s)", session.user_id, session.expires_at)
        await self._notify(AuthChangeEvent.TOKEN_REFRESHED, session)
        return session

    async def sign_out(self) -> None:
        session = self._session
        try:
            if session is not None:
                await self._request("POST", "/logout", access_token=session.access_token)
        finally:
            self._remove_session()
            await self._notify(AuthChangeEvent.SIGNED_OUT, None)

    async def update_user(self, metadata: Dict[str, Any]) -> ProviderUser:
        session = await self.get_session()
        if session is None:
            raise IdentityProviderError("Not signed in", status_code=401)

        data = await self._request(
            "PUT",
            "/user",
            json_body={"data": metadata},
            access_token=session.access_token,
        )
        user = ProviderUser.from_provider(data)
        updated = session.model_copy(update={"user": user})
        self._save_session(updated)
        await self._notify(AuthChangeEvent.USER_UPDATED, updated)
        return user

    async def reset_password_for_email(self, email: str, redirect_to: Optional[str] = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        await self._request("POST", "/recover", json_body={"email": email}, params=params)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def on_auth_state_change(self, callback: AuthStateCallback) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscribers[subscription.id] = subscription
        return subscription

    async def _notify(self, event: AuthChangeEvent, session: Optional[Session]) -> None:
        for subscription in list(self._subscribers.values()):
            try:
                result = subscription.callback(event.value, session)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Auth state subscriber failed for event %s", event.value)
