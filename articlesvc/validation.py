"""Request schemas and their validation into INVALID_ARGUMENT errors."""

from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field

from articlesvc.entity import CATEGORY_MAX_LENGTH, TITLE_MAX_LENGTH, PostStatus
from articlesvc.errors import FieldViolation, RpcError, StatusCode

_UUID = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$")
_STATUS_OPTIONS = tuple(status.label for status in PostStatus)


@dataclass(frozen=True)
class _Rules:
    label: str
    required: bool = False
    max_length: int | None = None
    uuid: bool = False
    one_of: tuple[str, ...] = ()


def _field(label: str, **rules):
    return field(default="", metadata={"rules": _Rules(label, **rules)})


@dataclass
class CreatePostRequest:
    """Fields accepted when creating a post."""

    title: str = _field("Title", required=True, max_length=TITLE_MAX_LENGTH)
    content: str = _field("Content", required=True)
    category: str = _field("Category", required=True, max_length=CATEGORY_MAX_LENGTH)
    status: str = _field("Status", one_of=_STATUS_OPTIONS)


@dataclass
class UpdatePostRequest:
    """Fields accepted when updating a post."""

    id: str = _field("ID", required=True, uuid=True)
    title: str = _field("Title", required=True, max_length=TITLE_MAX_LENGTH)
    content: str = _field("Content", required=True)
    category: str = _field("Category", required=True, max_length=CATEGORY_MAX_LENGTH)
    status: str = _field("Status", one_of=_STATUS_OPTIONS)


def _check(rules: _Rules, value: str) -> str | None:
    if not value:
        return f"{rules.label} wajib diisi" if rules.required else None
    if rules.max_length is not None and len(value) > rules.max_length:
        return f"panjang maksimal {rules.label} adalah {rules.max_length} karakter"
    if rules.uuid and not _UUID.match(value):
        return f"{rules.label} harus berupa UUID yang valid"
    if rules.one_of and value not in rules.one_of:
        return f"{rules.label} harus berupa salah satu dari [{' '.join(rules.one_of)}]"
    return None


def validate_request(request):
    """Return ``request`` if valid, else raise an INVALID_ARGUMENT RpcError."""
    if not dataclasses.is_dataclass(request) or isinstance(request, type):
        raise RpcError(StatusCode.INTERNAL, "Invalid validation error")

    violations = []
    for item in dataclasses.fields(request):
        rules = item.metadata.get("rules")
        if rules is None:
            continue
        description = _check(rules, getattr(request, item.name))
        if description is not None:
            violations.append(FieldViolation(rules.label.lower(), description))

    if violations:
        raise RpcError(StatusCode.INVALID_ARGUMENT, "Invalid Argument", violations)
    return request