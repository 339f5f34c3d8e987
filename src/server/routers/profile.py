"""Profile views."""
import logging

from fastapi import APIRouter, Depends

from src.adapters.blog_api import ClientError
from src.models.user import UserView
from src.repositories.user_repo import UserRepository
from src.server.deps import get_services, get_user_repo, render, require_user
from src.server.schemas import ProfileUpdateRequest, ViewResponse
from src.server.services import AppServices

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("/{user_id}", response_model=ViewResponse)
async def get_profile(
    user_id: str,
    users: UserRepository = Depends(get_user_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    """공개 프로필과 최근 포스트 (첫 페이지)."""
    profile = await users.get_by_id(user_id)
    if profile is None:
        raise ClientError("User not found", status_code=404)
    posts = await users.get_posts(user_id, page=1, limit=10)
    return render(
        services,
        data={
            "user": profile.model_dump(mode="json"),
            "posts": [post.model_dump(mode="json") for post in posts.posts],
        },
    )


@router.put("", response_model=ViewResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    user: UserView = Depends(require_user),
    users: UserRepository = Depends(get_user_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    profile = await users.update_profile(body.changes())
    if profile.id == user.id:
        services.store.update_user(
            user.model_copy(
                update={
                    "name": profile.name or user.name,
                    "avatar_url": profile.avatar_url or user.avatar_url,
                }
            )
        )
    services.notifier.success("Profile updated successfully!")
    return render(services, data={"user": profile.model_dump(mode="json")})
