[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "carbonstats"
version = "0.1.0"
description = "Compare billed document totals with call-minute charges on a Carbon Billing server"
requires-python = ">=3.10"
keywords = ["billing", "carbon billing", "voip", "accounting", "invoices"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Accounting",
]
dependencies = [
    "requests>=2.28",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
    "responses>=0.23",
]

[project.scripts]
carbonstats = "carbonstats.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["carbonstats"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
