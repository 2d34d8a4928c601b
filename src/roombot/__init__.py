"""Roombot: a Matrix room assistant with moderation, broadcasts, roles and an OpenAI assistant."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("roombot")
except PackageNotFoundError:
    __version__ = "0.0.0"
