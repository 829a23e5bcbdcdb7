# locale_sync/cli/__init__.py
"""Locale-Sync 命令行工具。"""

from locale_sync.cli.main import app

__all__ = ["app"]
