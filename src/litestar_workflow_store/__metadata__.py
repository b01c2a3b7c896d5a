"""Distribution metadata for litestar-workflow-store, read from the installed package."""

from __future__ import annotations

import importlib.metadata

__all__ = ("__project__", "__version__")

_DISTRIBUTION = "litestar-workflow-store"

__version__ = importlib.metadata.version(_DISTRIBUTION)
"""Version of the installed distribution."""
__project__ = importlib.metadata.metadata(_DISTRIBUTION)["Name"]
"""Name of the installed distribution."""
