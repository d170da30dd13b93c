[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "aml"
version = "0.8.0"
description = "A compiler for a compact text notation of music into Standard MIDI Files, with MIDI dump tools"
requires-python = ">=3.10"
dependencies = []
keywords = ["midi", "music", "notation", "compiler", "smf"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: MIDI",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
aml = "aml.cli:main"
midump = "aml.midump:main"
atom = "aml.atom:main"

[tool.hatch.build.targets.wheel]
packages = ["aml"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
