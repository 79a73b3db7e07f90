[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ytdisc"
version = "0.1.0"
description = "Terminal tool that downloads YouTube playlists and videos as MP3 folders sized for audio CDs"
requires-python = ">=3.10"
keywords = ["youtube", "audio-cd", "mp3", "yt-dlp", "playlist", "terminal"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: CD Audio :: CD Writing",
]
dependencies = [
    "blessed",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
yt-disc = "ytdisc.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ytdisc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
