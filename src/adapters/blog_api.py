"""Async HTTP client for the blog REST API.

요청 인터셉트:
- 조회(GET/HEAD)가 아닌 요청, 또는 민감한 조회 경로에는 Bearer 토큰을 첨부합니다.
- 토큰은 항상 세션 store에서 읽으며, 인증 서비스 세션이 없을 때만 레거시 저장 토큰을 사용합니다.

응답 인터셉트:
- 401 응답 시 세션 갱신을 정확히 한 번 시도하고, 성공하면 원래 요청을 한 번만 재전송합니다.
- 갱신 실패 시 세션을 정리하고 on_session_expired 훅으로 로그인 화면 이동을 알립니다.
- 재전송 후 다시 401이 오면 그대로 실패합니다 (무한 갱신 루프 방지).
"""
from __future__ import annotations

import inspect
import json
import logging
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from src.adapters.token_storage import TokenStorage
from src.auth.store import SessionStore
from src.server.settings import settings

logger = logging.getLogger(__name__)

LEGACY_TOKEN_KEY = "token"
READ_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class BlogApiError(RuntimeError):
    """Raised when the blog API request fails."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NetworkError(BlogApiError):
    """The blog API could not be reached."""


class ClientError(BlogApiError):
    """HTTP 4xx response."""


class ServerError(BlogApiError):
    """HTTP 5xx response."""


class SessionExpiredError(ClientError):
    """401 response and the session could not be refreshed."""


def _backend_message(response: httpx.Response) -> Optional[str]:
    try:
        data = response.json()
    except (json.JSONDecodeError, ValueError):
        return None
    if isinstance(data, dict):
        for key in ("message", "error"):
            value = data.get(key)
            if isinstance(value, str) and value:
                return value
    return None


class BlogApiClient:
    """Blog REST client with bearer attachment and single refresh-and-replay."""

    def __init__(
        self,
        store: SessionStore,
        *,
        base_url: Optional[str] = None,
        legacy_storage: Optional[TokenStorage] = None,
        sensitive_read_paths: Optional[Iterable[str]] = None,
        on_session_expired: Optional[Callable[[], Any]] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.store = store
        self.base_url = base_url or settings.BLOG_API_URL
        self.legacy_storage = legacy_storage or TokenStorage(settings.LEGACY_TOKEN_STORAGE_PATH)
        self.sensitive_read_paths = (
            list(sensitive_read_paths)
            if sensitive_read_paths is not None
            else settings.sensitive_read_paths()
        )
        self.on_session_expired = on_session_expired
        self.timeout = timeout or settings.BLOG_API_TIMEOUT or 10.0
        self._transport = transport

    def _build_url(self, path: str) -> str:
        if not self.base_url:
            raise BlogApiError("BLOG_API_URL is not configured.")
        base = self.base_url.rstrip("/")
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base}{path}"

    def requires_auth(self, method: str, path: str) -> bool:
        if method.upper() not in READ_METHODS:
            return True
        return any(path.startswith(prefix) for prefix in self.sensitive_read_paths)

    async def _current_token(self) -> Optional[str]:
        token = await self.store.get_access_token()
        if token:
            return token
        return self.legacy_storage.get(LEGACY_TOKEN_KEY)

    def store_legacy_token(self, token: str) -> None:
        self.legacy_storage.set(LEGACY_TOKEN_KEY, token)

    @property
    def has_legacy_token(self) -> bool:
        return bool(self.legacy_storage.get(LEGACY_TOKEN_KEY))

    def clear_legacy_token(self) -> None:
        self.legacy_storage.remove(LEGACY_TOKEN_KEY)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        json_body: Optional[Dict[str, Any]],
        params: Optional[Dict[str, Any]],
        token: Optional[str],
    ) -> httpx.Response:
        headers: Dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                return await client.request(
                    method,
                    url,
                    json=json_body,
                    params=params,
                    headers=headers,
                )
        except httpx.HTTPError as exc:
            logger.error("Blog API request failed for %s %s: %s", method, url, exc)
            raise NetworkError("Blog API request failed") from exc

    async def _expire_session(self) -> None:
        self.store.clear_session()
        self.clear_legacy_token()
        if self.on_session_expired is not None:
            result = self.on_session_expired()
            if inspect.isawaitable(result):
                await result

    async def request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        method = method.upper()
        url = self._build_url(path)
        token = await self._current_token() if self.requires_auth(method, path) else None

        response = await self._send(method, url, json_body=json_body, params=params, token=token)

        if response.status_code == 401:
            logger.info("Blog API returned 401 for %s %s; refreshing session", method, url)
            session = await self.store.refresh_session()
            if session is None:
                await self._expire_session()
                raise SessionExpiredError(
                    _backend_message(response) or "Session expired. Please log in again.",
                    status_code=401,
                )
            response = await self._send(
                method,
                url,
                json_body=json_body,
                params=params,
                token=session.access_token,
            )

        return self._decode(method, url, response)

    def _decode(self, method: str, url: str, response: httpx.Response) -> Any:
        status_code = response.status_code
        if status_code >= 400:
            message = _backend_message(response) or f"Request failed with status {status_code}"
            logger.error(
                "Blog API responded with status %s for %s %s: %s",
                status_code,
                method,
                url,
                response.text[:500],
            )
            error_cls = ServerError if status_code >= 500 else ClientError
            raise error_cls(message, status_code=status_code)

        if not response.content:
            return {}

        try:
            return response.json()
        except json.JSONDecodeError as exc:
            preview = response.text[:200]
            logger.error("Failed to decode blog API JSON response from %s: %s", url, preview)
            raise ServerError("Invalid JSON response from blog API", status_code=status_code) from exc

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("POST", path, json_body=json_body)

    async def put(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PUT", path, json_body=json_body)

    async def patch(self, path: str, json_body: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("PATCH", path, json_body=json_body)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
