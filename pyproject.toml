[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "selium"
version = "0.1.0"
description = "A publish/subscribe message broker and asyncio client using a length-prefixed framing protocol over TLS"
requires-python = ">=3.10"
keywords = ["pubsub", "messaging", "broker", "publisher", "subscriber", "streaming", "asyncio", "bincode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Framework :: AsyncIO",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Networking",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
selium-server = "selium.server.broker:main"
selium-benchmarks = "selium.bench.runner:main"

[tool.hatch.build.targets.wheel]
packages = ["selium"]

[tool.hatch.build.targets.sdist]
include = [
    "selium",
    "tests",
    "pyproject.toml",
    "README.md",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
