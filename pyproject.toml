[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cloudseed"
version = "0.1.0"
description = "Instance metadata and user-data sources, systemd-networkd unit generation and address substitution for cloud instance initialisation"
requires-python = ">=3.10"
dependencies = []
keywords = ["cloud-init", "metadata", "user-data", "systemd-networkd", "provisioning"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Installation/Setup",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["cloudseed"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
