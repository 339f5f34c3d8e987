"""Session model issued by the identity provider.

인증 서비스가 발급한 access/refresh 토큰 쌍과 만료 정보를 표현합니다.
클라이언트는 이 값을 캐시할 뿐이며, 토큰의 발급/검증/갱신은 인증 서비스가 담당합니다.
"""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ProviderUser(BaseModel):
    """User record embedded in a provider session."""

    id: str = Field(..., description="Provider user ID")
    email: Optional[str] = Field(None, description="User email")
    user_metadata: Dict[str, Any] = Field(default_factory=dict)
    app_metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None

    @classmethod
    def from_provider(cls, payload: Dict[str, Any]) -> "ProviderUser":
        return cls(
            id=str(payload.get("id")),
            email=payload.get("email"),
            user_metadata=payload.get("user_metadata") or {},
            app_metadata=payload.get("app_metadata") or {},
            created_at=payload.get("created_at"),
        )


class Session(BaseModel):
    """세션 모델.

    Attributes:
        access_token: Bearer 토큰 (JWT)
        refresh_token: 갱신용 토큰
        token_type: 토큰 타입 (기본값: bearer)
        expires_in: 발급 시점 기준 유효 시간(초)
        expires_at: 만료 시각 (epoch seconds)
        user: 세션 소유자
    """

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None
    user: ProviderUser

    @property
    def user_id(self) -> str:
        return self.user.id

    def is_expired(self, skew_seconds: int = 0, now: Optional[float] = None) -> bool:
        """Return True when the session expires within ``skew_seconds``."""
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return current >= self.expires_at - max(0, skew_seconds)

    @classmethod
    def from_provider(cls, payload: Dict[str, Any]) -> "Session":
        """Create a Session from a provider token response."""
        expires_at = payload.get("expires_at")
        expires_in = payload.get("expires_in")
        if not isinstance(expires_at, (int, float)) and isinstance(expires_in, (int, float)):
            expires_at = int(time.time()) + int(expires_in)

        return cls(
            access_token=payload["access_token"],
            refresh_token=payload["refresh_token"],
            token_type=payload.get("token_type") or "bearer",
            expires_in=int(expires_in) if isinstance(expires_in, (int, float)) else None,
            expires_at=int(expires_at) if isinstance(expires_at, (int, float)) else None,
            user=ProviderUser.from_provider(payload.get("user") or {}),
        )
