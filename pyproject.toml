[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flinkoperator"
version = "0.1.0"
description = "Flink application settings, flink-conf rendering, job manager REST client and retry handling for a Kubernetes operator"
requires-python = ">=3.10"
keywords = ["flink", "kubernetes", "operator", "savepoint", "jobmanager", "flink-conf"]
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
    "Topic :: System :: Distributed Computing",
    "Typing :: Typed",
]
dependencies = [
    "requests>=2.25",
    "packaging>=21.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["flinkoperator"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
