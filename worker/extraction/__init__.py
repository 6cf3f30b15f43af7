"""Content extraction package."""

# Lazy imports - use explicit imports when needed:
# from worker.extraction.page import extract_page_signals, count_links, PageSignals

__all__ = [
    "PageSignals",
    "MetaTags",
    "extract_page_signals",
    "count_links",
]
