"""Parser modules for extracting data from G2B pages."""

from .list_parser import ResultExtractor, derive_id

__all__ = ["ResultExtractor", "derive_id"]
