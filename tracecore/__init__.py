"""Core package exports for the trace recording toolkit."""

# Re-export commonly used modules for convenience.
from . import codec, csv_import, document, electrode, errors, overlay, sample_query, view_window, zarr_store

__all__ = [
    "codec",
    "csv_import",
    "document",
    "electrode",
    "errors",
    "overlay",
    "sample_query",
    "view_window",
    "zarr_store",
]
