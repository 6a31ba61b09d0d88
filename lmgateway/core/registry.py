"""Process-wide model catalog slot.

Routes read the catalog from here, so they need no import of the
application module; ``create_app`` (or a test harness) fills it.
"""

from typing import Optional

from .catalog import ModelCatalog

_catalog: Optional[ModelCatalog] = None


def set_catalog(catalog: Optional[ModelCatalog]) -> None:
    """Install the catalog served by the routes (``None`` clears it)."""
    global _catalog
    _catalog = catalog


def get_catalog() -> ModelCatalog:
    if _catalog is None:
        raise RuntimeError("No model catalog installed; create the app with create_app()")
    return _catalog
