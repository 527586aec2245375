[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fastsync"
version = "0.1.0"
description = "Building blocks for fast blockchain node synchronisation: checksums, delimited framing, header caching, account reconciliation and block/merkle conversion."
requires-python = ">=3.10"
dependencies = []
keywords = ["blockchain", "sync", "reconciliation", "lru-cache", "checksum", "merkle", "varint"]
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
    "Topic :: System :: Distributed Computing",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fastsync"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
