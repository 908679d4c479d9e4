[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "autoaccept"
version = "0.1.0"
description = "Watches the screen for a match-found dialog and clicks the accept button, with a small browser control page."
requires-python = ">=3.10"
keywords = ["automation", "screen", "template-matching", "games", "websocket"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Intended Audience :: End Users/Desktop",
    "Natural Language :: Japanese",
    "Operating System :: Microsoft :: Windows",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]
dependencies = [
    "pillow",
    "aiohttp",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
autoaccept = "autoaccept.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["autoaccept"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
