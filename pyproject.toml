[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "workwx"
version = "0.1.0"
description = "Enterprise WeChat (WeCom) helpers: callback message parsing, token refreshing, user info records and group-robot webhooks"
requires-python = ">=3.10"
dependencies = []
keywords = ["wecom", "workwx", "enterprise-wechat", "webhook", "chatbot", "callback"]
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
    "Topic :: Communications :: Chat",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["workwx"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
