[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sqlforge"
version = "0.1.0"
description = "SQL dialects, ordered lifecycle callbacks, error collections and SQL logging for an object-relational mapper"
requires-python = ">=3.10"
dependencies = []
keywords = ["sql", "orm", "dialect", "callbacks", "mysql", "postgres", "sqlite", "mssql"]
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
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sqlforge"]

[tool.pytest.ini_options]
addopts = "-ra"
