[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "warpstat"
version = "0.1.0"
description = "Analysis of object-storage benchmark operation logs: segmentation, throughput, request and time-to-first-byte statistics, and run comparison."
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "s3", "object-storage", "throughput", "latency", "statistics"]
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
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["warpstat"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
