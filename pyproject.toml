[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sanctionwatch"
version = "0.17.1"
description = "Download and parse US sanctions and export-control lists (OFAC SDN, CSL, BIS DPL), store watches and call their webhooks."
requires-python = ">=3.10"
keywords = [
    "sanctions",
    "ofac",
    "sdn",
    "compliance",
    "denied-persons",
    "consolidated-screening-list",
    "entity-list",
    "webhook",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
]
dependencies = [
    "requests>=2.25",
    "pymysql>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
sanctionwatch-webhook-receiver = "sanctionwatch.webhook_receiver:main"

[tool.hatch.build.targets.wheel]
packages = ["sanctionwatch"]

[tool.hatch.build.targets.sdist]
include = ["sanctionwatch", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
