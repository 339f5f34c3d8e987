"""Dependency injection for FastAPI routes.

뷰는 토큰을 직접 다루지 않고, 여기서 주입되는 store/저장소만 사용합니다.
로그인이 필요한 뷰는 require_user 의존성을 사용합니다.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import Depends, Request

from src.auth.store import SessionStore
from src.models.user import UserView
from src.repositories.auth_repo import AuthRepository
from src.repositories.post_repo import PostRepository
from src.repositories.user_repo import UserRepository
from src.server.schemas import ViewResponse
from src.server.services import AppServices

logger = logging.getLogger(__name__)


class LoginRequiredError(Exception):
    """Raised when a view needs a signed-in user."""


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_store(services: AppServices = Depends(get_services)) -> SessionStore:
    return services.store


def get_auth_repo(services: AppServices = Depends(get_services)) -> AuthRepository:
    return services.auth_repo


def get_post_repo(services: AppServices = Depends(get_services)) -> PostRepository:
    return services.post_repo


def get_user_repo(services: AppServices = Depends(get_services)) -> UserRepository:
    return services.user_repo


def require_user(store: SessionStore = Depends(get_store)) -> UserView:
    """현재 로그인한 사용자의 view-model을 반환합니다.

    Raises:
        LoginRequiredError: 사용자 정보가 없으면 (로그인 화면으로 이동)
    """
    user = store.user
    if user is None:
        raise LoginRequiredError()
    return user


def render(
    services: AppServices,
    data: Any = None,
    redirect: Optional[str] = None,
) -> ViewResponse:
    """Build a view response, draining pending notifications."""
    return ViewResponse(
        data=data,
        notifications=services.notifier.drain(),
        redirect=redirect,
    )
