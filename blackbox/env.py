"""Runtime and OS metadata snippets included in every bundle."""

from __future__ import annotations

import platform
import sys


def _lines(pairs: list[tuple[str, str]]) -> str:
    return "".join(f"{key}={value}\n" for key, value in pairs)


def python_info() -> str:
    return _lines(
        [
            ("python.implementation", platform.python_implementation()),
            ("python.version", platform.python_version()),
            ("python.executable", sys.executable or "<unknown>"),
            ("python.prefix", sys.prefix),
        ]
    )


def os_info() -> str:
    return _lines(
        [
            ("os.name", platform.system() or "<unknown>"),
            ("os.release", platform.release() or "<unknown>"),
            ("os.arch", platform.machine() or "<unknown>"),
        ]
    )
