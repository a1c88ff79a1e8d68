[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tonegend"
version = "0.2.0"
description = "Telephony tone generator: DTMF and call-progress indicator tones synthesised as 16-bit PCM"
requires-python = ">=3.10"
dependencies = []
keywords = ["dtmf", "telephony", "tones", "indicator", "synthesis", "audio", "pcm"]
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
    "Topic :: Communications :: Telephony",
    "Topic :: Multimedia :: Sound/Audio :: Sound Synthesis",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tonegend"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
