[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "taskval"
version = "0.1.0"
description = "Validator for structured task definitions and task graphs, with optional Beads issue creation"
requires-python = ">=3.10"
dependencies = []
keywords = ["validation", "task-graph", "dag", "planning", "beads", "cli"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Quality Assurance",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
taskval = "taskval.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["taskval"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
strict = true
