[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "userenricher"
version = "1.0.0"
description = "HTTP service that stores people and enriches them with predicted age, sex and nationality"
requires-python = ">=3.10"
keywords = ["fastapi", "rest", "users", "enrichment", "sqlalchemy", "migrations"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Framework :: FastAPI",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
]
dependencies = [
    "fastapi",
    "httpx",
    "sqlalchemy>=2.0",
    "python-dotenv",
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "httpx",
]

[project.scripts]
userenricher = "userenricher.main:main"
userenricher-migrate = "userenricher.migrator:main"

[tool.hatch.build.targets.wheel]
packages = ["userenricher"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
