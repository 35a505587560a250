"""Direct inbox submission and force inclusion."""

from .forcer import DEFAULT_MAX_SEARCH_RANGE_BLOCKS, ForceInclusionEvent, InboxForcer

__all__ = ["DEFAULT_MAX_SEARCH_RANGE_BLOCKS", "ForceInclusionEvent", "InboxForcer"]
