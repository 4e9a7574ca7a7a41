[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mycache"
version = "0.1.0"
description = "Distributed in-memory key/value cache with LRU eviction, consistent hashing, request coalescing and append-only persistence"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "cache",
    "lru",
    "distributed-cache",
    "consistent-hashing",
    "singleflight",
    "wsgi",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mycache"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]
