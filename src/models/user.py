"""User model and schema.

사용자 정보를 표현하는 모델입니다.
세션에서 직접 파생되는 view-model(UserView)과
블로그 백엔드가 관리하는 프로필(UserProfile)을 다룹니다.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from src.models.session import Session


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


class UserView(BaseModel):
    """세션에서 파생된 사용자 view-model.

    추가 네트워크 요청 없이 세션 payload만으로 생성합니다.

    Attributes:
        id: 인증 서비스 사용자 ID
        email: 사용자 이메일
        name: 표시 이름 (metadata.name, 없으면 이메일 로컬 파트)
        avatar_url: 프로필 이미지 URL (optional)
    """
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    avatar_url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "8d0f6a8e-2f6b-4a4e-9a57-0f1e8f3c2b11",
                "email": "parkj@example.com",
                "name": "Park J",
                "avatar_url": "https://avatars.example.com/u/1",
            }
        }

    @classmethod
    def from_session(cls, session: Session) -> "UserView":
        """Derive the view-model from a session payload."""
        user = session.user
        metadata = user.user_metadata or {}
        name = metadata.get("name")
        if not name and user.email:
            name = user.email.split("@")[0]
        return cls(
            id=user.id,
            email=user.email,
            name=name,
            avatar_url=metadata.get("avatar_url"),
        )


class UserProfile(BaseModel):
    """블로그 백엔드의 공개 프로필."""
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    posts_count: int = 0
    created_at: Optional[datetime] = Field(default=None, description="Account creation timestamp")

    @classmethod
    def from_backend(cls, payload: Dict[str, Any]) -> "UserProfile":
        """Create a UserProfile from blog backend payload."""
        return cls(
            id=str(payload.get("id")),
            name=payload.get("name"),
            email=payload.get("email"),
            avatar_url=payload.get("avatar_url"),
            bio=payload.get("bio"),
            posts_count=payload.get("postsCount") or payload.get("posts_count") or 0,
            created_at=_parse_timestamp(payload.get("created_at")),
        )

    def to_view(self) -> UserView:
        return UserView(id=self.id, email=self.email, name=self.name, avatar_url=self.avatar_url)
