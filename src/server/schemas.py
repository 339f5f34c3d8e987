"""Pydantic schemas for request/response models.

이 파일은 뷰(엔드포인트)의 요청/응답 모델을 정의합니다.
모든 뷰 응답은 ViewResponse 형태로 데이터, 알림, 이동할 경로를 함께 반환합니다.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.services.notifications import Notification


# ============================================================================
# Auth 관련 스키마
# ============================================================================

class LoginRequest(BaseModel):
    """이메일/비밀번호 로그인 요청."""
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """회원가입 요청.

    Attributes:
        email: 사용자 이메일
        password: 비밀번호 (최소 6자)
        name: 표시 이름 (optional, 세션 metadata에 저장)
    """
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    name: Optional[str] = Field(None, max_length=100)


class PasswordRecoveryRequest(BaseModel):
    email: str = Field(..., min_length=3)


class OAuthCallbackRequest(BaseModel):
    """클라이언트가 전달하는 전체 리다이렉트 URL (fragment 포함)."""
    url: str


# ============================================================================
# Post 관련 스키마
# ============================================================================

class PostCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    published: bool = False

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Hello world",
                "content": "First post",
                "published": False,
            }
        }


class PostUpdateRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = Field(None, min_length=1)
    published: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ============================================================================
# Profile 관련 스키마
# ============================================================================

class ProfileUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    bio: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


# ============================================================================
# 공통 응답
# ============================================================================

class ViewResponse(BaseModel):
    """뷰 응답.

    Attributes:
        data: 화면 데이터
        notifications: 사용자에게 보여줄 알림(토스트) 목록
        redirect: 이동해야 할 경로 (없으면 None)
    """
    data: Optional[Any] = None
    notifications: List[Notification] = Field(default_factory=list)
    redirect: Optional[str] = None
