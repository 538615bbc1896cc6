# web_freezer/__init__.py
"""
WebFreezer package initializer.
Defines package version and exposes CLI.
"""
__version__ = "0.1.0"

from .cli import cli  # экспорт для pytest
