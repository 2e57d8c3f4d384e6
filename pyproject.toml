[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tinymqtt"
version = "0.1.0"
description = "Core building blocks of a small MQTT broker: packets, topic tree, ACL, mailboxes and a priority executor"
requires-python = ">=3.10"
dependencies = []
keywords = ["mqtt", "broker", "topic", "acl", "pubsub", "retained", "wildcard"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tinymqtt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
