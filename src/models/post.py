"""Post models.

포스트는 서버가 소유하며, 클라이언트는 표시/편집용 임시 사본만 가집니다.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from src.models.user import _parse_timestamp


class PostAuthor(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class Post(BaseModel):
    """블로그 포스트.

    Attributes:
        id: 포스트 ID
        title: 제목
        content: 본문
        published: 공개 여부
        author: 작성자 참조 (optional)
        created_at: 생성 시각
        updated_at: 수정 시각
    """
    id: str
    title: str
    content: str = ""
    published: bool = False
    author: Optional[PostAuthor] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def was_edited(self) -> bool:
        return bool(self.updated_at and self.created_at and self.updated_at != self.created_at)

    @classmethod
    def from_backend(cls, payload: Dict[str, Any]) -> "Post":
        """Create a Post from blog backend payload.

        작성자는 ``users`` (join 결과) 또는 ``author`` 키, 혹은 ``user_id``로 전달됩니다.
        """
        author_payload = payload.get("users") or payload.get("author")
        author: Optional[PostAuthor] = None
        if isinstance(author_payload, dict) and author_payload.get("id") is not None:
            author = PostAuthor(
                id=str(author_payload["id"]),
                name=author_payload.get("name"),
                avatar_url=author_payload.get("avatar_url"),
            )
        elif payload.get("user_id") is not None:
            author = PostAuthor(id=str(payload["user_id"]))

        return cls(
            id=str(payload.get("id")),
            title=payload.get("title") or "",
            content=payload.get("content") or "",
            published=bool(payload.get("published", False)),
            author=author,
            created_at=_parse_timestamp(payload.get("created_at")),
            updated_at=_parse_timestamp(payload.get("updated_at")),
        )


class Pagination(BaseModel):
    page: int = 1
    limit: int = 10
    total: int = 0
    pages: int = 0


class PostPage(BaseModel):
    """페이지 단위 포스트 목록."""
    posts: List[Post] = Field(default_factory=list)
    pagination: Optional[Pagination] = None

    @property
    def published_count(self) -> int:
        return sum(1 for post in self.posts if post.published)

    @property
    def draft_count(self) -> int:
        return sum(1 for post in self.posts if not post.published)

    @classmethod
    def from_backend(cls, payload: Dict[str, Any]) -> "PostPage":
        posts = [Post.from_backend(item) for item in payload.get("posts") or []]
        pagination_payload = payload.get("pagination")
        pagination = (
            Pagination(**pagination_payload) if isinstance(pagination_payload, dict) else None
        )
        return cls(posts=posts, pagination=pagination)
