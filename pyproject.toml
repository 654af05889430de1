[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kdumpkit"
version = "0.1.0"
description = "Kdump helper tool: find capture kernels, identify kernel images, read kernel configurations, edit multipath.conf"
requires-python = ">=3.10"
dependencies = []
keywords = ["kdump", "kernel", "crash dump", "ikconfig", "kconfig", "multipath"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Recovery Tools",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
kdumpkit = "kdumpkit.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["kdumpkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
