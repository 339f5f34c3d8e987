"""Post repository backed by the blog REST API."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from src.adapters.blog_api import BlogApiClient, ClientError
from src.models.post import Post, PostPage

logger = logging.getLogger(__name__)


def _extract_post_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    post_payload = data.get("post")
    if isinstance(post_payload, dict):
        return post_payload
    return data


class PostRepository:
    """CRUD and listing operations for posts."""

    def __init__(self, client: BlogApiClient) -> None:
        self.client = client

    async def list_posts(
        self,
        page: int = 1,
        limit: int = 10,
        search: Optional[str] = None,
    ) -> PostPage:
        """Published posts, newest first, optionally filtered by ``search``."""
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if search:
            params["search"] = search
        payload = await self.client.get("/posts", params=params)
        result = PostPage.from_backend(payload)
        logger.info("Retrieved %s posts (page %s)", len(result.posts), page)
        return result

    async def get(self, post_id: str) -> Optional[Post]:
        try:
            payload = await self.client.get(f"/posts/{post_id}")
        except ClientError as exc:
            if exc.status_code == 404:
                logger.info("Post %s not found", post_id)
                return None
            raise
        return Post.from_backend(_extract_post_payload(payload))

    async def my_posts(self, page: int = 1, limit: int = 10) -> PostPage:
        payload = await self.client.get(
            "/posts/user/my-posts",
            params={"page": page, "limit": limit},
        )
        return PostPage.from_backend(payload)

    async def create(self, title: str, content: str, published: bool = False) -> Post:
        payload = await self.client.post(
            "/posts",
            json_body={"title": title, "content": content, "published": published},
        )
        post = Post.from_backend(_extract_post_payload(payload))
        logger.info("Created post %s (published=%s)", post.id, post.published)
        return post

    async def update(self, post_id: str, changes: Dict[str, Any]) -> Post:
        payload = await self.client.put(f"/posts/{post_id}", json_body=changes)
        return Post.from_backend(_extract_post_payload(payload))

    async def delete(self, post_id: str) -> None:
        await self.client.delete(f"/posts/{post_id}")
        logger.info("Deleted post %s", post_id)

    async def toggle_publish(self, post_id: str) -> Post:
        payload = await self.client.patch(f"/posts/{post_id}/toggle-publish")
        return Post.from_backend(_extract_post_payload(payload))
