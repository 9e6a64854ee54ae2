"""Copy text to the system clipboard through the platform's clipboard tool."""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess

logger = logging.getLogger(__name__)

_LINUX_TOOLS = (
    ["wl-copy", "--type", "text/plain"],
    ["xclip", "-selection", "clipboard"],
    ["xsel", "--clipboard", "--input"],
)


def _commands() -> list[list[str]]:
    system = platform.system()
    if system == "Darwin":
        return [["pbcopy"]]
    if system == "Windows":
        return [["clip"]]
    return [list(cmd) for cmd in _LINUX_TOOLS]


def copy_to_clipboard(text: str) -> bool:
    """Copy *text*; return False when no clipboard tool is available or all fail."""
    for cmd in _commands():
        if shutil.which(cmd[0]) is None:
            continue
        try:
            subprocess.run(cmd, input=text.encode(), check=True, timeout=5)
        except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as exc:
            logger.debug("Clipboard tool %s failed: %s", cmd[0], exc)
            continue
        return True
    logger.debug("No usable clipboard tool found")
    return False
