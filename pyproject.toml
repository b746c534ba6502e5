[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lightningsnap"
version = "0.1.0"
description = "Snapshot protobuf serialisation, snapshot naming and health tracking for LMDB synchronisation"
requires-python = ">=3.10"
dependencies = []
keywords = ["lmdb", "snapshot", "protobuf", "sync", "healthz"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lightningsnap"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.mypy]
python_version = "3.10"
