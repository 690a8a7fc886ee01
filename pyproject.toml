[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "barblocks"
version = "0.20.0"
description = "Status bar blocks: clock, pomodoro, speedtest, package updates, tasks, temperature, NVIDIA GPU, toggles and an ALSA mixer device."
requires-python = ">=3.10"
dependencies = []
keywords = ["i3bar", "status bar", "swaybar", "blocks", "desktop"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: X11 Applications",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Desktop Environment :: Window Managers :: Applets",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["barblocks"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
