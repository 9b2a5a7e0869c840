[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "naijauni"
version = "1.0.0"
description = "A small HTTP service and client for looking up Nigerian universities by name or abbreviation."
requires-python = ">=3.10"
dependencies = []
keywords = ["nigeria", "universities", "api", "http", "client", "server"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
naijauni-server = "naijauni.server:main"

[tool.hatch.build.targets.wheel]
packages = ["naijauni"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
