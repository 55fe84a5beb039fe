"""Request handlers of the article API, wrapping results in response envelopes."""

from __future__ import annotations

import logging
from http import HTTPStatus

from articlesvc.entity import PostStatus
from articlesvc.usecase import ListPostsRequest, PostPayload, PostUseCase
from articlesvc.validation import CreatePostRequest, UpdatePostRequest, validate_request

HEALTH_MESSAGE = "CMS Service is running."


def _envelope(message: str, **extra) -> dict:
    return {
        "code": int(HTTPStatus.OK),
        "status": HTTPStatus.OK.phrase,
        "message": message,
        **extra,
    }


def _status_label(status) -> str:
    """The enum name of ``status``, or its number when it names no status."""
    try:
        return PostStatus(status).label
    except ValueError:
        return str(status)


class ArticleHandler:
    """Implements every call of the article service."""

    def __init__(self, use_case: PostUseCase, logger=None):
        self._use_case = use_case
        self._log = logger if logger is not None else logging.getLogger(__name__)

    def healthz_check(self) -> dict:
        return {"message": HEALTH_MESSAGE}

    def get_posts(self, request: ListPostsRequest) -> dict:
        data = self._use_case.get_posts(request)
        return _envelope("Get Posts Successfully", data=data)

    def get_post_by_id(self, post_id: str) -> dict:
        data = self._use_case.get_post_by_id(post_id)
        return _envelope("Get Post by id Successfully.", data=data)

    def internal_create_post(self, payload: PostPayload) -> dict:
        validate_request(
            CreatePostRequest(
                title=payload.title,
                content=payload.content,
                category=payload.category,
                status=_status_label(payload.status),
            )
        )
        self._use_case.internal_create_post(payload)
        return _envelope("Create Post Successfully.")

    def internal_get_posts(self, request: ListPostsRequest) -> dict:
        data = self._use_case.internal_get_posts(request)
        return _envelope("Get Posts Successfully", data=data)

    def internal_get_post_by_id(self, post_id: str) -> dict:
        data = self._use_case.internal_get_post_by_id(post_id)
        return _envelope("Get Post by id Successfully.", data=data)

    def internal_update_post(self, post_id: str, payload: PostPayload) -> dict:
        validate_request(
            UpdatePostRequest(
                id=post_id,
                title=payload.title,
                content=payload.content,
                category=payload.category,
                status=_status_label(payload.status),
            )
        )
        self._use_case.internal_update_post(post_id, payload)
        return _envelope("Update Post Successfully.")

    def internal_delete_post_by_id(self, post_id: str) -> dict:
        self._use_case.internal_delete_post_by_id(post_id)
        return _envelope("Delete Post Successfully.")