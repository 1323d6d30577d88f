[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "trunkctl"
version = "0.1.0"
description = "Core logic for a DMR tier III trunking controller: logical channels, paced queues, routing, rewriting, settings and id lookup"
requires-python = ">=3.10"
dependencies = []
keywords = ["dmr", "trunking", "ham radio", "amateur radio", "tier iii", "rc4"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["trunkctl"]

[tool.pytest.ini_options]
addopts = "-ra"
