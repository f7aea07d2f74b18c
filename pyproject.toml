[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "searchctl"
version = "1.1.0"
description = "Library for managing search cluster profiles and driving the k-NN and anomaly detection plugins"
requires-python = ">=3.10"
keywords = ["search", "cluster", "anomaly-detection", "knn", "profiles", "yaml"]
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
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["searchctl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
