"""Convenience exports for the agent runtime package.

To keep import-time side effects minimal we lazily proxy attributes from
``agent_runtime.src.runtime``.
"""

from __future__ import annotations

import importlib
from typing import Any

__version__ = "0.3.0"


def __getattr__(name: str) -> Any:
    api = importlib.import_module("agent_runtime.src.runtime")
    if name in api.__all__:
        return getattr(api, name)
    raise AttributeError(name)


def __dir__() -> list[str]:
    api = importlib.import_module("agent_runtime.src.runtime")
    return sorted(set(globals().keys()) | set(api.__all__))
