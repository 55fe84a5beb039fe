[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "articlesvc"
version = "0.1.0"
description = "A small article service: post storage, request validation and a JSON HTTP gateway."
requires-python = ">=3.10"
dependencies = []
keywords = ["cms", "articles", "posts", "http", "gateway", "wsgi", "sqlite"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content :: Content Management System",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
articlesvc = "articlesvc.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["articlesvc"]

[tool.hatch.build.targets.sdist]
include = ["articlesvc", "tests", "pyproject.toml", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
