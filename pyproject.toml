[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zapcore"
version = "0.1.0"
description = "Structured, leveled logging core: entries, fields, JSON encoding, hooks, level filtering and sampling."
requires-python = ">=3.11"
dependencies = []
keywords = ["logging", "structured-logging", "json", "sampling", "log-levels"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Logging",
]

[project.optional-dependencies]
test = ["pytest", "pyyaml"]

[tool.hatch.build.targets.wheel]
packages = ["zapcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
