[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "deploymonkey"
version = "0.1.0"
description = "Deployment planning core: group diffs, instance-count suggestions, staged stops and autodeployer bookkeeping"
requires-python = ">=3.10"
dependencies = []
keywords = ["deployment", "autodeployer", "scheduling", "orchestration"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Software Distribution",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["deploymonkey"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
