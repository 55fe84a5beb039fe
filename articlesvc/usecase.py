"""Business operations on posts, shaped for the API responses."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from articlesvc.entity import Post, PostStatus, format_date
from articlesvc.repository import PostRepository, QueryBuilder


@dataclass
class ListPostsRequest:
    """Paging, search and status filter for listing posts."""

    search: str = ""
    page: int = 0
    item_per_page: int = 0
    status: PostStatus = PostStatus.DRAFT


@dataclass
class PostPayload:
    """The editable fields of a post."""

    title: str = ""
    content: str = ""
    category: str = ""
    status: PostStatus = PostStatus.DRAFT


def post_to_dict(post: Post) -> dict:
    """The response form of a post."""
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "category": post.category,
        "createdDate": format_date(post.created_date) if post.created_date else "",
        "updatedDate": format_date(post.updated_date) if post.updated_date else "",
        "status": PostStatus(post.status).label,
    }


class PostUseCase:
    """Post operations backed by a :class:`PostRepository`."""

    def __init__(self, repository: PostRepository, logger=None):
        self._repository = repository
        self._log = logger if logger is not None else logging.getLogger(__name__)

    @staticmethod
    def _query(request: ListPostsRequest) -> QueryBuilder:
        return QueryBuilder(
            search=request.search,
            page=int(request.page),
            item_per_page=int(request.item_per_page),
        )

    def get_posts(self, request: ListPostsRequest) -> dict:
        rows, total = self._repository.get_posts(self._query(request), request.status)
        return {"items": [post_to_dict(row) for row in rows], "total": total}

    def get_post_by_id(self, post_id: str) -> dict:
        return post_to_dict(self._repository.get_post_by_id(post_id))

    def internal_get_posts(self, request: ListPostsRequest) -> dict:
        rows, total = self._repository.internal_get_posts(self._query(request))
        return {"items": [post_to_dict(row) for row in rows], "total": total}

    def internal_get_post_by_id(self, post_id: str) -> dict:
        return post_to_dict(self._repository.internal_get_post_by_id(post_id))

    def internal_create_post(self, payload: PostPayload) -> Post:
        post = Post(
            title=payload.title,
            content=payload.content,
            category=payload.category,
            status=PostStatus(payload.status),
        )
        return self._repository.internal_create_post(post)

    def internal_update_post(self, post_id: str, payload: PostPayload) -> Post:
        post = self._repository.internal_get_post_by_id(post_id)
        post.title = payload.title
        post.content = payload.content
        post.category = payload.category
        post.status = PostStatus(payload.status)
        return self._repository.internal_update_post(post)

    def internal_delete_post_by_id(self, post_id: str) -> None:
        self._repository.internal_delete_post_by_id(post_id)