[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gomake"
version = "0.1.0"
description = "Build, start, stop and check the Go service and tool binaries of a project tree"
requires-python = ">=3.10"
keywords = ["build", "go", "services", "process-management", "protoc", "deployment"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Build Tools",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "psutil",
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
gomake = "gomake.cli:main"
gomake-microservice-test = "gomake.microservice:main"
gomake-helloworld = "gomake.helloworld:main"

[tool.hatch.build.targets.wheel]
packages = ["gomake"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
