[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netlinkreq"
version = "0.2.1"
description = "Build, send and parse rtnetlink requests for links, addresses and neighbours"
requires-python = ">=3.10"
dependencies = []
keywords = ["network", "netlink", "rtnetlink", "routing", "neighbour", "interfaces"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["netlinkreq"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
