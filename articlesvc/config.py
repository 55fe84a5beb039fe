"""Service configuration and fixed runtime limits."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

MAX_HEADER_BYTES = 1 << 20
READ_TIMEOUT = timedelta(minutes=1)
WRITE_TIMEOUT = timedelta(minutes=1)

ORM_CONN_MAX_IDLE_TIME = timedelta(minutes=1)
ORM_CONN_MAX_LIFE_TIME = timedelta(hours=24)
ORM_MAX_IDLE_CONNS = 100
ORM_MAX_OPEN_CONNS = 200

_POSTGRES_KEY = "POSTGRES_DNS"


@dataclass(frozen=True)
class Config:
    """Settings read from the environment file."""

    postgres_dns: str = ""


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        return value[1:-1]
    comment = value.find(" #")
    if comment != -1:
        value = value[:comment]
    return value.strip()


def _parse_env_file(text: str) -> dict[str, str]:
    values: dict[str, str] = {}
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(f"malformed line {number} in environment file: {raw!r}")
        values[key.upper()] = _unquote(value.strip())
    return values


def load_config(path=".env", environ: Mapping[str, str] | None = None) -> Config:
    """Read the environment file at ``path``; set environment variables win."""
    environ = os.environ if environ is None else environ
    values = _parse_env_file(Path(path).read_text(encoding="utf-8"))
    postgres_dns = environ.get(_POSTGRES_KEY) or values.get(_POSTGRES_KEY, "")
    return Config(postgres_dns=postgres_dns)