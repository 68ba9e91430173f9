[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ipfs_search"
version = "0.1.0"
description = "Crawler components for indexing content published on IPFS: protocol access, metadata extraction and search indexes."
requires-python = ">=3.10"
keywords = ["ipfs", "crawler", "search", "indexing", "elasticsearch", "tika"]
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
    "Topic :: Internet :: WWW/HTTP :: Indexing/Search",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["ipfs_search"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
