[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "musicbot"
version = "0.1.0"
description = "Core of a chat music bot: per-guild track queues, loop modes, voice session tracking, chat command dispatch and a yt-dlp/ffmpeg audio pipeline"
requires-python = ">=3.10"
dependencies = []
keywords = ["music", "bot", "chat", "queue", "yt-dlp", "ffmpeg", "voice"]
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
    "Topic :: Communications :: Chat",
    "Topic :: Multimedia :: Sound/Audio :: Players",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["musicbot"]

[tool.pytest.ini_options]
addopts = "-ra"
