[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sherpa-scaler"
version = "0.1.0"
description = "Scaling policies, policy storage, a Nomad meta policy watcher and a command line client for a Nomad job scaler"
requires-python = ">=3.10"
keywords = ["nomad", "autoscaling", "scaling", "consul", "scheduler"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
sherpa = "sherpa_scaler.cli.main:main"

[tool.hatch.build.targets.wheel]
packages = ["sherpa_scaler"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
