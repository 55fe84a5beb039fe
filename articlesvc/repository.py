"""Storage of posts in a relational database."""

from __future__ import annotations

import logging
import sqlite3
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from articlesvc.entity import Post, PostStatus
from articlesvc.errors import RpcError, StatusCode

_TABLE = Post.table_name
_COLUMNS = "id, title, content, category, status, created_date, updated_date"
_INTERNAL_MESSAGE = "Internal Server Error."
_NOT_FOUND_MESSAGE = "Post Not Found"


@dataclass
class QueryBuilder:
    """Search and paging options for listing posts."""

    search: str = ""
    page: int = 0
    item_per_page: int = 0
    sort_key: str = ""
    direction_key: str = ""
    lang: str = ""


def connect(database=":memory:") -> sqlite3.Connection:
    """Open a connection to the database at ``database``."""
    return sqlite3.connect(database, check_same_thread=False)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _to_post(row) -> Post:
    post_id, title, content, category, status, created, updated = row
    return Post(
        title=title,
        content=content,
        category=category,
        status=PostStatus(status),
        id=post_id,
        created_date=datetime.fromisoformat(created),
        updated_date=datetime.fromisoformat(updated),
    )


class PostRepository:
    """Reads and writes posts through a DB-API connection."""

    def __init__(self, connection, logger=None):
        self._conn = connection
        self._log = logger if logger is not None else logging.getLogger(__name__)

    def _internal(self, func: str, what: str, exc: Exception) -> RpcError:
        self._log.error("[post repository][func: %s] %s: %s", func, what, exc)
        return RpcError(StatusCode.INTERNAL, _INTERNAL_MESSAGE)

    def create_schema(self) -> None:
        """Create the posts table if it does not exist yet."""
        with self._conn:
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {_TABLE} ("
                "id TEXT PRIMARY KEY, "
                "title VARCHAR(200) NOT NULL, "
                "content TEXT NOT NULL, "
                "category VARCHAR(100) NOT NULL, "
                "status INTEGER NOT NULL DEFAULT 0, "
                "created_date TEXT NOT NULL, "
                "updated_date TEXT NOT NULL)"
            )

    def _list(self, func: str, query: QueryBuilder, status) -> tuple[list[Post], int]:
        clauses: list[str] = []
        params: list = []
        if status is not None:
            clauses.append("status = ?")
            params.append(int(status))
        if query.search:
            clauses.append("title LIKE ?")
            params.append(f"%{query.search}%")
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        try:
            (count,) = self._conn.execute(
                f"SELECT COUNT(*) FROM {_TABLE}{where}", params
            ).fetchone()
        except sqlite3.Error as exc:
            raise self._internal(func, "Failed to count posts", exc) from exc

        sql = f"SELECT {_COLUMNS} FROM {_TABLE}{where} ORDER BY created_date DESC, rowid DESC"
        page_params = list(params)
        if query.page > 0:
            sql += " LIMIT ? OFFSET ?"
            page_params += [query.item_per_page, (query.page - 1) * query.item_per_page]

        try:
            rows = self._conn.execute(sql, page_params).fetchall()
        except sqlite3.Error as exc:
            raise self._internal(func, "Failed to get posts", exc) from exc
        return [_to_post(row) for row in rows], count

    def _by_id(self, func: str, post_id: str) -> Post:
        try:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM {_TABLE} WHERE id = ?", (post_id,)
            ).fetchone()
        except sqlite3.Error as exc:
            raise self._internal(func, "Failed to get post by id", exc) from exc
        if row is None:
            self._log.warning("[post repository][func: %s] Post Not Found: %s", func, post_id)
            raise RpcError(StatusCode.NOT_FOUND, _NOT_FOUND_MESSAGE)
        return _to_post(row)

    def get_posts(self, query: QueryBuilder, status) -> tuple[list[Post], int]:
        """Posts with ``status`` matching the query, newest first, and their total."""
        return self._list("GetPosts", query, PostStatus(status))

    def get_post_by_id(self, post_id: str) -> Post:
        return self._by_id("GetPostByID", post_id)

    def internal_get_posts(self, query: QueryBuilder) -> tuple[list[Post], int]:
        """Posts of any status matching the query, newest first, and their total."""
        return self._list("InternalGetPosts", query, None)

    def internal_get_post_by_id(self, post_id: str) -> Post:
        return self._by_id("InternalGetPostByID", post_id)

    def internal_get_posts_by_ids(self, ids: Iterable[str]) -> list[Post]:
        """All posts whose id is among ``ids``."""
        wanted = list(ids)
        if not wanted:
            return []
        marks = ", ".join("?" for _ in wanted)
        try:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM {_TABLE} WHERE id IN ({marks})", wanted
            ).fetchall()
        except sqlite3.Error as exc:
            raise self._internal("InternalGetPostByIDs", "Failed to get posts by ids", exc) from exc
        return [_to_post(row) for row in rows]

    def internal_create_post(self, post: Post) -> Post:
        """Store ``post``, filling in its id and dates where unset."""
        now = _now()
        post.id = post.id or str(uuid.uuid4())
        post.created_date = post.created_date or now
        post.updated_date = post.updated_date or now
        post.status = PostStatus(post.status)
        try:
            with self._conn:
                self._conn.execute(
                    f"INSERT INTO {_TABLE} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                    self._values(post),
                )
        except sqlite3.Error as exc:
            raise self._internal("InternalCreatePost", "Failed to create post", exc) from exc
        self._log.info(
            "[post repository][func: InternalCreatePost] Successfully created post with ID: %s",
            post.id,
        )
        return post

    @staticmethod
    def _values(post: Post) -> tuple:
        return (
            post.id,
            post.title,
            post.content,
            post.category,
            int(post.status),
            post.created_date.isoformat(),
            post.updated_date.isoformat(),
        )

    def internal_update_post(self, post: Post) -> Post:
        """Save every field of ``post``, inserting it if absent, and reload it."""
        now = _now()
        post.created_date = post.created_date or now
        post.updated_date = post.updated_date or now
        values = self._values(post)
        try:
            with self._conn:
                cursor = self._conn.execute(
                    f"UPDATE {_TABLE} SET title = ?, content = ?, category = ?, status = ?, "
                    "created_date = ?, updated_date = ? WHERE id = ?",
                    values[1:] + values[:1],
                )
                if cursor.rowcount == 0:
                    self._conn.execute(
                        f"INSERT INTO {_TABLE} ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?)",
                        values,
                    )
                row = self._conn.execute(
                    f"SELECT {_COLUMNS} FROM {_TABLE} WHERE id = ?", (post.id,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise self._internal(
                "InternalUpdatePost", f"Failed to update post with ID {post.id}", exc
            ) from exc
        if row is None:
            self._log.error(
                "[post repository][func: InternalUpdatePost] Failed to retrieve updated post "
                "with ID %s",
                post.id,
            )
            raise RpcError(StatusCode.INTERNAL, _INTERNAL_MESSAGE)
        self._log.info(
            "[post repository][func: InternalUpdatePost] Successfully updated post with ID: %s",
            post.id,
        )
        return _to_post(row)

    def internal_delete_post_by_id(self, post_id: str) -> None:
        """Delete the post with ``post_id``; NOT_FOUND if there is none."""
        try:
            with self._conn:
                row = self._conn.execute(
                    f"SELECT id FROM {_TABLE} WHERE id = ?", (post_id,)
                ).fetchone()
                if row is None:
                    self._log.error(
                        "[post repository][func: InternalDeletePostByID] Post Not Found: %s",
                        post_id,
                    )
                    raise RpcError(StatusCode.NOT_FOUND, _NOT_FOUND_MESSAGE)
                self._conn.execute(f"DELETE FROM {_TABLE} WHERE id = ?", (post_id,))
        except sqlite3.Error as exc:
            raise self._internal("InternalDeletePostByID", "Failed to delete post", exc) from exc