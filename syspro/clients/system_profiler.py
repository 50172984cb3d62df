"""
clients/system_profiler.py
--------------------------

``SystemProfiler`` extracts information about the system the client is
running on so that every request can carry a rich user agent.  This
helps SYSPRO administrators debug integrations.  Collecting the data
never raises: any failure degrades to a fixed descriptive string.
"""

from __future__ import annotations

import os
import platform
import re
import socket
import subprocess
import sys
from typing import Any, Dict, Optional

from syspro.version import VERSION

PROC_VERSION = "/proc/version"

_UNAME_PLATFORMS = re.compile(r"linux|darwin|bsd|sunos|solaris|cygwin", re.IGNORECASE)
_WINDOWS_PLATFORMS = re.compile(r"win32|mswin|mingw", re.IGNORECASE)


def _run(command: str, *, shell: bool = False) -> str:
    args: Any = command if shell else command.split()
    completed = subprocess.run(args, capture_output=True, text=True, shell=shell, check=False)
    return (completed.stdout or "").strip()


class SystemProfiler:
    """Build the user agent mapping attached to requests."""

    @classmethod
    def uname(cls) -> str:
        if os.path.exists(PROC_VERSION):
            try:
                with open(PROC_VERSION, encoding="utf-8", errors="replace") as fh:
                    return fh.read().strip()
            except OSError:
                return "uname lookup failed"
        if _UNAME_PLATFORMS.search(sys.platform):
            return cls.uname_from_system()
        if _WINDOWS_PLATFORMS.search(sys.platform):
            return cls.uname_from_system_ver()
        return "unknown platform"

    @staticmethod
    def uname_from_system() -> str:
        try:
            return _run("uname -a")
        except FileNotFoundError:
            return "uname executable not found"
        except OSError:  # couldn't create subprocess
            return "uname lookup failed"

    @staticmethod
    def uname_from_system_ver() -> str:
        try:
            # ``ver`` is a cmd.exe builtin.
            return _run("ver", shell=True)
        except FileNotFoundError:
            return "ver executable not found"
        except OSError:
            return "uname lookup failed"

    def __init__(self, app_info: Optional[Dict[str, Any]] = None) -> None:
        self.app_info = app_info
        self._uname = self.uname()

    def user_agent(self) -> Dict[str, Any]:
        try:
            hostname = socket.gethostname()
        except OSError:
            hostname = None
        lang_version = f"{platform.python_version()} ({' '.join(platform.python_build())})"
        ua = {
            "application": self.app_info,
            "bindings_version": VERSION,
            "lang": "python",
            "lang_version": lang_version,
            "platform": platform.platform(),
            "engine": platform.python_implementation(),
            "uname": self._uname,
            "hostname": hostname,
        }
        return {k: v for k, v in ua.items() if v not in (None, "", {})}
