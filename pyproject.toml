[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "uperfkit"
version = "0.1.0"
description = "Network benchmark toolkit: workload profiles, control protocol messages and interface statistics"
requires-python = ">=3.10"
dependencies = []
keywords = ["benchmark", "network", "performance", "throughput", "profile"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Benchmark",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
uperfkit = "uperfkit.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["uperfkit"]

[tool.pytest.ini_options]
addopts = "-ra"
