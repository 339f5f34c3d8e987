"""Post views: home listing, detail, dashboard and post mutations."""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.adapters.blog_api import ClientError
from src.models.user import UserView
from src.repositories.post_repo import PostRepository
from src.server.deps import get_post_repo, get_services, render, require_user
from src.server.schemas import PostCreateRequest, PostUpdateRequest, ViewResponse
from src.server.services import AppServices
from src.server.settings import settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["posts"])


@router.get("/posts", response_model=ViewResponse)
async def list_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    """Home: 공개된 포스트 목록 (검색, 페이지네이션)."""
    result = await posts.list_posts(page=page, limit=limit, search=search)
    return render(services, data=result.model_dump(mode="json"))


@router.get("/posts/{post_id}", response_model=ViewResponse)
async def get_post(
    post_id: str,
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    post = await posts.get(post_id)
    if post is None:
        raise ClientError("Post not found", status_code=404)
    data = post.model_dump(mode="json")
    data["was_edited"] = post.was_edited
    return render(services, data={"post": data})


@router.get("/dashboard", response_model=ViewResponse)
async def dashboard(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: UserView = Depends(require_user),
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    """내 포스트 목록과 통계."""
    result = await posts.my_posts(page=page, limit=limit)
    total = result.pagination.total if result.pagination else len(result.posts)
    return render(
        services,
        data={
            "user": user.model_dump(),
            "posts": [post.model_dump(mode="json") for post in result.posts],
            "pagination": result.pagination.model_dump() if result.pagination else None,
            "stats": {
                "total": total,
                "published": result.published_count,
                "drafts": result.draft_count,
            },
        },
    )


@router.post("/posts", response_model=ViewResponse, status_code=201)
async def create_post(
    body: PostCreateRequest,
    _: UserView = Depends(require_user),
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    post = await posts.create(body.title, body.content, body.published)
    services.notifier.success("Post created successfully!")
    return render(services, data={"post": post.model_dump(mode="json")}, redirect=settings.LANDING_PATH)


@router.put("/posts/{post_id}", response_model=ViewResponse)
async def update_post(
    post_id: str,
    body: PostUpdateRequest,
    _: UserView = Depends(require_user),
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    post = await posts.update(post_id, body.changes())
    services.notifier.success("Post updated successfully!")
    return render(services, data={"post": post.model_dump(mode="json")}, redirect=settings.LANDING_PATH)


@router.delete("/posts/{post_id}", response_model=ViewResponse)
async def delete_post(
    post_id: str,
    _: UserView = Depends(require_user),
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    await posts.delete(post_id)
    services.notifier.success("Post deleted successfully")
    return render(services)


@router.patch("/posts/{post_id}/toggle-publish", response_model=ViewResponse)
async def toggle_publish(
    post_id: str,
    _: UserView = Depends(require_user),
    posts: PostRepository = Depends(get_post_repo),
    services: AppServices = Depends(get_services),
) -> ViewResponse:
    post = await posts.toggle_publish(post_id)
    services.notifier.success("Post status updated")
    return render(services, data={"post": post.model_dump(mode="json")})
