[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "securechat"
version = "0.1.0"
description = "A small TLS chat server and interactive client with accounts and per-pair chat history"
requires-python = ">=3.10"
dependencies = []
keywords = ["chat", "tls", "ssl", "server", "client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
securechat-server = "securechat.server:main"
securechat-client = "securechat.client:main"

[tool.hatch.build.targets.wheel]
packages = ["securechat"]

[tool.pytest.ini_options]
addopts = "-ra"
