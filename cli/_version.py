"""boxport version, read from the installed distribution."""
from __future__ import annotations

import importlib.metadata

DIST_NAME = "boxport"

try:
    __version__ = importlib.metadata.version(DIST_NAME)
except importlib.metadata.PackageNotFoundError:
    # running from a source checkout
    __version__ = "0.1.0+local"
