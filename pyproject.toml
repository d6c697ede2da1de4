[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "crabdrill"
version = "5.5.1"
description = "Runner for small compile-and-test exercises that tracks your progress"
requires-python = ">=3.11"
dependencies = [
    "watchdog",
]
keywords = ["exercises", "learning", "teaching", "rustc", "practice", "watch"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education :: Computer Aided Instruction (CAI)",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
crabdrill = "crabdrill.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["crabdrill"]

[tool.pytest.ini_options]
addopts = "-ra"
