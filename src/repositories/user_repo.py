"""User repository backed by the blog REST API."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from src.adapters.blog_api import BlogApiClient, ClientError
from src.models.post import PostPage
from src.models.user import UserProfile

logger = logging.getLogger(__name__)


def _extract_user_payload(data: Dict[str, Any]) -> Dict[str, Any]:
    user_payload = data.get("user")
    if isinstance(user_payload, dict):
        return user_payload
    return data


class UserRepository:
    """Public profiles and the signed-in user's profile updates."""

    def __init__(self, client: BlogApiClient) -> None:
        self.client = client

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        """Fetch a user profile; returns None when the backend answers 404."""
        try:
            payload = await self.client.get(f"/users/{user_id}")
        except ClientError as exc:
            if exc.status_code == 404:
                logger.info("User %s not found in blog backend", user_id)
                return None
            raise
        return UserProfile.from_backend(_extract_user_payload(payload))

    async def get_posts(self, user_id: str, page: int = 1, limit: int = 10) -> PostPage:
        payload = await self.client.get(
            f"/users/{user_id}/posts",
            params={"page": page, "limit": limit},
        )
        return PostPage.from_backend(payload)

    async def update_profile(self, changes: Dict[str, Any]) -> UserProfile:
        payload = await self.client.put("/users/profile", json_body=changes)
        logger.info("Updated profile fields: %s", ", ".join(sorted(changes)))
        return UserProfile.from_backend(_extract_user_payload(payload))
