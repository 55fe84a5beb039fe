from datetime import datetime

import pytest

from articlesvc.entity import Post, PostStatus
from articlesvc.errors import RpcError, StatusCode
from articlesvc.repository import PostRepository, connect
from articlesvc.usecase import ListPostsRequest, PostPayload, PostUseCase, post_to_dict


@pytest.fixture
def use_case():
    repository = PostRepository(connect(":memory:"))
    repository.create_schema()
    return PostUseCase(repository)


def test_post_to_dict_formats_dates():
    post = Post(
        title="T",
        content="C",
        category="K",
        status=PostStatus.PUBLISH,
        id="abc",
        created_date=datetime(2024, 3, 5),
        updated_date=datetime(2024, 3, 5),
    )
    result = post_to_dict(post)
    assert result["createdDate"] == "05 Mar 2024"
    assert result["updatedDate"] == result["createdDate"]
    assert result["status"] == "Publish"
    assert result["id"] == "abc"


def test_create_then_get(use_case):
    created = use_case.internal_create_post(PostPayload("Title", "Body", "news", PostStatus.PUBLISH))
    found = use_case.get_post_by_id(created.id)
    assert found["title"] == "Title"
    assert found["content"] == "Body"
    assert found["category"] == "news"
    assert found == use_case.internal_get_post_by_id(created.id)


def test_get_posts_only_with_status(use_case):
    use_case.internal_create_post(PostPayload("Draft", "b", "c"))
    live = use_case.internal_create_post(PostPayload("Live", "b", "c", PostStatus.PUBLISH))
    result = use_case.get_posts(ListPostsRequest(status=PostStatus.PUBLISH))
    assert result["total"] == 1
    assert [item["id"] for item in result["items"]] == [live.id]

    everything = use_case.internal_get_posts(ListPostsRequest())
    assert everything["total"] == 2


def test_empty_listing(use_case):
    assert use_case.internal_get_posts(ListPostsRequest()) == {"items": [], "total": 0}


def test_update_post(use_case):
    created = use_case.internal_create_post(PostPayload("Old", "b", "c"))
    use_case.internal_update_post(created.id, PostPayload("New", "b2", "c2", PostStatus.TRASH))
    found = use_case.internal_get_post_by_id(created.id)
    assert found["title"] == "New"
    assert found["content"] == "b2"
    assert found["status"] == PostStatus.TRASH.label


def test_update_missing_post(use_case):
    with pytest.raises(RpcError) as info:
        use_case.internal_update_post("missing", PostPayload("a", "b", "c"))
    assert info.value.code is StatusCode.NOT_FOUND


def test_delete_post(use_case):
    created = use_case.internal_create_post(PostPayload("x", "y", "z"))
    use_case.internal_delete_post_by_id(created.id)
    with pytest.raises(RpcError) as info:
        use_case.get_post_by_id(created.id)
    assert info.value.code is StatusCode.NOT_FOUND