[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "signalhub"
version = "1.0.0"
description = "WebSocket signalling server that relays messages between named peers and tracks who is online"
requires-python = ">=3.10"
keywords = ["websocket", "signalling", "signaling", "relay", "presence", "server"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Communications",
]
dependencies = [
    "websockets>=13.0",
    "filelock",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
signalhub = "signalhub.main:main"

[tool.hatch.build.targets.wheel]
packages = ["signalhub"]

[tool.pytest.ini_options]
addopts = "-ra"
