[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "modemlink"
version = "0.1.0"
description = "Frame codec, modem reply parsers, a Wi-Fi AT-command driver and printf-style formatting for serial modems"
requires-python = ">=3.10"
dependencies = []
keywords = ["at-commands", "nb-iot", "wifi", "modem", "uart", "crc16", "framing", "gnss", "nmea"]
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
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Communications",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["modemlink"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
