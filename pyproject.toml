[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dotenvpp"
version = "0.0.3"
description = "Parse, interpolate and load layered .env files."
requires-python = ">=3.10"
dependencies = []
keywords = ["dotenv", "env", "config", "environment", "secrets"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
dotenvpp = "dotenvpp.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dotenvpp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
