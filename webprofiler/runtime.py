"""Introspection of the running Python interpreter."""

from __future__ import annotations

import os
import platform
import sys
from importlib import metadata
from typing import Any, Dict, List, Tuple

SENSITIVE_MARKERS = ("SECRET", "PASSWORD", "TOKEN", "KEY", "CREDENTIAL", "AUTH")


def _installed_distributions() -> List[Tuple[str, str]]:
    packages = {}
    for dist in metadata.distributions():
        name = dist.metadata["Name"]
        if name:
            packages[name.lower()] = (name, dist.version)
    return [packages[key] for key in sorted(packages)]


def _environment() -> Dict[str, str]:
    return {
        key: "******" if any(m in key.upper() for m in SENSITIVE_MARKERS) else value
        for key, value in sorted(os.environ.items())
    }


def runtime_info() -> Dict[str, Any]:
    return {
        "python": {
            "version": sys.version,
            "implementation": platform.python_implementation(),
            "executable": sys.executable,
            "prefix": sys.prefix,
            "platform": platform.platform(),
            "machine": platform.machine(),
            "pid": os.getpid(),
        },
        "sys_path": list(sys.path),
        "packages": _installed_distributions(),
        "environment": _environment(),
    }
