"""Authentication views.

- 이메일/비밀번호 로그인, 회원가입, 로그아웃
- OAuth 로그인 시작 (인증 서비스 authorize URL로 리다이렉트)
- OAuth 콜백 처리 (GET: query 파라미터, POST: fragment 포함 전체 URL)
- 레거시 백엔드 토큰 로그인 완료 (/auth/success?token=...)
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from src.adapters.blog_api import BlogApiError
from src.server.deps import get_services, render
from src.server.schemas import (
    LoginRequest,
    OAuthCallbackRequest,
    PasswordRecoveryRequest,
    RegisterRequest,
    ViewResponse,
)
from src.server.services import AppServices
from src.server.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/session", response_model=ViewResponse)
async def current_session(services: AppServices = Depends(get_services)) -> ViewResponse:
    """현재 인증 상태 (토큰은 노출하지 않음)."""
    state = services.store.state
    return render(
        services,
        data={
            "user": state.user.model_dump() if state.user else None,
            "is_authenticated": state.is_authenticated,
            "loading": state.loading,
            "version": state.version,
        },
    )


@router.post("/login", response_model=ViewResponse)
async def login(
    body: LoginRequest,
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    await services.store.login(body.email, body.password)
    user = services.store.user
    return render(
        services,
        data={"user": user.model_dump() if user else None},
        redirect=settings.LANDING_PATH,
    )


@router.post("/register", response_model=ViewResponse)
async def register(
    body: RegisterRequest,
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    result = await services.store.register(body.email, body.password, body.name)
    if result.confirmation_required:
        return render(
            services,
            data={"confirmation_required": True},
            redirect=settings.LOGIN_PATH,
        )
    user = services.store.user
    return render(
        services,
        data={"confirmation_required": False, "user": user.model_dump() if user else None},
        redirect=settings.LANDING_PATH,
    )


@router.post("/password/recover", response_model=ViewResponse)
async def recover_password(
    body: PasswordRecoveryRequest,
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    await services.provider.reset_password_for_email(body.email, redirect_to=settings.AUTH_REDIRECT_URL)
    services.notifier.success("Password reset email sent")
    return render(services)


@router.get("/login/oauth")
@router.get("/login/oauth/{provider}")
async def login_with_oauth(
    provider: Optional[str] = None,
    services: AppServices = Depends(get_services),
) -> RedirectResponse:
    """인증 서비스의 OAuth 화면으로 리다이렉트합니다."""
    authorize_url = services.store.login_with_oauth(provider)
    return RedirectResponse(url=authorize_url, status_code=302)


@router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    services: AppServices = Depends(get_services),
) -> RedirectResponse:
    handler = services.callback_handler()
    destination = await handler.handle(str(request.url))
    return RedirectResponse(url=destination or settings.LOGIN_PATH, status_code=302)


@router.post("/auth/callback", response_model=ViewResponse)
async def oauth_callback_from_fragment(
    body: OAuthCallbackRequest,
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    """Fragment는 서버로 전송되지 않으므로 클라이언트가 전체 URL을 전달합니다."""
    handler = services.callback_handler()
    destination = await handler.handle(body.url)
    return render(
        services,
        data={"state": handler.state.value},
        redirect=destination or settings.LOGIN_PATH,
    )


@router.get("/auth/success", response_model=ViewResponse)
async def legacy_auth_success(
    token: Optional[str] = None,
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    """레거시 백엔드 로그인 완료 처리."""
    if not token:
        services.notifier.error("No authentication token found")
        return render(services, redirect=settings.LOGIN_PATH)

    try:
        user = await services.auth_repo.complete_legacy_login(token)
    except BlogApiError as exc:
        logger.error("Legacy auth completion failed: %s", exc)
        services.notifier.error("Authentication failed. Please try again.")
        return render(services, redirect=settings.LOGIN_PATH)

    services.notifier.success("Login successful!")
    return render(services, data={"user": user.model_dump()}, redirect=settings.LANDING_PATH)


@router.post("/logout", response_model=ViewResponse)
async def logout(services: AppServices = Depends(get_services)) -> ViewResponse:
    if services.blog_client.has_legacy_token:
        try:
            await services.auth_repo.logout()
        except BlogApiError as exc:
            logger.warning("Blog backend logout failed: %s", exc)
    await services.store.logout()
    return render(services, redirect="/")
