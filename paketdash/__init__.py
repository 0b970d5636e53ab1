"""paketdash - Procurement budget dashboard backend"""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("paketdash")
except importlib.metadata.PackageNotFoundError:
    # Fallback for development mode
    __version__ = "0.1.0"

__all__ = ["__version__"]
