"""struct-canvas - live structural diagram editor core for a watched code base."""

__version__ = "0.3.0"
__author__ = "struct-canvas contributors"

from .core.exceptions import StructCanvasError

__all__ = ["StructCanvasError", "__version__"]
