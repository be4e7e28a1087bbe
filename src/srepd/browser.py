"""Platform-specific browser opener, resolved once at startup."""

from __future__ import annotations

import sys

# sys.platform prefix -> argv prefix
_OPEN_COMMANDS: dict[str, list[str]] = {
    "linux": ["xdg-open"],
    "freebsd": ["xdg-open"],
    "darwin": ["open"],
}

UNSUPPORTED_MESSAGE = "unsupported OS: no browser open command available"


def default_open_command(platform: str | None = None) -> list[str]:
    """Return the open command for ``platform`` (default: this one), or [] if unknown."""
    platform = platform or sys.platform
    for prefix, command in _OPEN_COMMANDS.items():
        if platform.startswith(prefix):
            return list(command)
    return []


def open_url_argv(open_command: list[str], url: str) -> list[str]:
    return [*open_command, url]
