[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yabkit"
version = "0.1.0"
description = "Request templates, template arguments, peer parsing and Thrift payload conversion for RPC tools"
requires-python = ">=3.10"
keywords = ["thrift", "rpc", "yaml", "templates", "interpolation"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["yabkit"]

[tool.pytest.ini_options]
addopts = "-ra"
