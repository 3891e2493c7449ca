[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "audaces"
version = "0.1.0"
description = "Positions book for a perpetual futures market: crit-bit trees of positions kept in paged slot memory, with garbage collection"
requires-python = ">=3.10"
dependencies = []
keywords = ["perpetuals", "positions", "crit-bit", "tree", "slot-allocator", "trading"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["audaces"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
