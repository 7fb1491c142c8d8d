[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "walksnail-osd"
version = "0.1.0"
description = "Burn Walksnail Avatar OSD recordings and SRT telemetry into FPV flight videos"
requires-python = ">=3.10"
keywords = ["fpv", "osd", "walksnail", "avatar", "ffmpeg", "srt", "video", "overlay", "betaflight", "inav"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Video :: Conversion",
    "Topic :: Multimedia :: Graphics",
]
dependencies = [
    "pillow",
    "platformdirs",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["walksnail_osd"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
