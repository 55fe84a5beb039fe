import pytest

from articlesvc.entity import PostStatus
from articlesvc.errors import RpcError, StatusCode
from articlesvc.handler import ArticleHandler
from articlesvc.repository import PostRepository, connect
from articlesvc.usecase import ListPostsRequest, PostPayload, PostUseCase


@pytest.fixture
def handler():
    repository = PostRepository(connect(":memory:"))
    repository.create_schema()
    return ArticleHandler(PostUseCase(repository))


def _payload(title="Hello", status=PostStatus.PUBLISH):
    return PostPayload(title=title, content="Body text", category="News", status=status)


def _only_id(handler):
    items = handler.internal_get_posts(ListPostsRequest())["data"]["items"]
    assert len(items) == 1
    return items[0]["id"]


def test_healthz_check(handler):
    assert handler.healthz_check() == {"message": "CMS Service is running."}


def test_create_then_list(handler):
    response = handler.internal_create_post(_payload())
    assert response["message"] == "Create Post Successfully."
    assert response["code"] == 200
    assert response["status"] == "OK"
    listing = handler.internal_get_posts(ListPostsRequest())
    assert listing["message"] == "Get Posts Successfully"
    assert listing["data"]["total"] == 1
    assert listing["data"]["items"][0]["title"] == "Hello"


def test_create_with_empty_title_is_rejected(handler):
    with pytest.raises(RpcError) as info:
        handler.internal_create_post(_payload(title=""))
    assert info.value.code is StatusCode.INVALID_ARGUMENT
    assert [v.field for v in info.value.details] == ["title"]
    assert handler.internal_get_posts(ListPostsRequest())["data"]["total"] == 0


def test_create_with_unknown_status_number_is_rejected(handler):
    with pytest.raises(RpcError) as info:
        handler.internal_create_post(_payload(status=7))
    assert info.value.code is StatusCode.INVALID_ARGUMENT
    assert [v.field for v in info.value.details] == ["status"]


def test_get_posts_filters_by_status(handler):
    handler.internal_create_post(_payload(title="Shown", status=PostStatus.PUBLISH))
    handler.internal_create_post(_payload(title="Hidden", status=PostStatus.DRAFT))
    result = handler.get_posts(ListPostsRequest(status=PostStatus.PUBLISH))
    assert [item["title"] for item in result["data"]["items"]] == ["Shown"]
    assert result["data"]["total"] == 1


def test_get_post_by_id(handler):
    handler.internal_create_post(_payload())
    post_id = _only_id(handler)
    public = handler.get_post_by_id(post_id)
    internal = handler.internal_get_post_by_id(post_id)
    assert public["message"] == "Get Post by id Successfully."
    assert public["data"] == internal["data"]
    assert public["data"]["id"] == post_id


def test_update_post(handler):
    handler.internal_create_post(_payload())
    post_id = _only_id(handler)
    response = handler.internal_update_post(post_id, _payload(title="Changed"))
    assert response["message"] == "Update Post Successfully."
    assert handler.get_post_by_id(post_id)["data"]["title"] == "Changed"


def test_update_requires_uuid(handler):
    with pytest.raises(RpcError) as info:
        handler.internal_update_post("not-a-uuid", _payload())
    assert info.value.code is StatusCode.INVALID_ARGUMENT
    assert [v.field for v in info.value.details] == ["id"]


def test_update_missing_post_is_not_found(handler):
    with pytest.raises(RpcError) as info:
        handler.internal_update_post("00000000-0000-0000-0000-000000000000", _payload())
    assert info.value.code is StatusCode.NOT_FOUND


def test_delete_post(handler):
    handler.internal_create_post(_payload())
    post_id = _only_id(handler)
    response = handler.internal_delete_post_by_id(post_id)
    assert response["message"] == "Delete Post Successfully."
    with pytest.raises(RpcError) as info:
        handler.get_post_by_id(post_id)
    assert info.value.code is StatusCode.NOT_FOUND