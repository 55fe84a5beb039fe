"""The post entity stored by the service."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import IntEnum
from typing import ClassVar

TITLE_MAX_LENGTH = 200
CATEGORY_MAX_LENGTH = 100

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class PostStatus(IntEnum):
    """Publication state of a post."""

    DRAFT = 0
    PUBLISH = 1
    TRASH = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def from_label(cls, label: str) -> PostStatus:
        for status in cls:
            if status.label == label:
                return status
        raise ValueError(f"unknown post status: {label!r}")


@dataclass
class Post:
    """An article post; ``id`` and the dates are assigned on storage."""

    title: str
    content: str
    category: str
    status: PostStatus = PostStatus.DRAFT
    id: str = ""
    created_date: datetime | None = None
    updated_date: datetime | None = None

    table_name: ClassVar[str] = "posts"


def format_date(value: date) -> str:
    """Format a date as ``DD Mon YYYY``, independent of locale."""
    return f"{value.day:02d} {_MONTHS[value.month - 1]} {value.year:04d}"