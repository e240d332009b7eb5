[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "contestbot"
version = "0.1.0"
description = "Telegram bot for contest registration with a web administration panel"
requires-python = ">=3.10"
keywords = ["telegram", "bot", "contest", "registration", "flask"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: Education",
    "Natural Language :: Russian",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
    "Topic :: Education",
]
dependencies = [
    "flask",
    "jinja2",
    "requests",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
contestbot = "contestbot.app:main"

[tool.hatch.build.targets.wheel]
packages = ["contestbot"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
