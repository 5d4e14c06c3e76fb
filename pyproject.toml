[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tamvm"
version = "0.1.0"
description = "Emulator for the Triangle Abstract Machine (TAM)"
requires-python = ">=3.10"
dependencies = []
keywords = ["tam", "triangle", "abstract machine", "emulator", "virtual machine", "bytecode"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Software Development :: Interpreters",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
tam = "tamvm.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["tamvm"]

[tool.pytest.ini_options]
addopts = "-ra"
