"""Crawler package: headless collection and PageSpeed measurement."""

# Lazy imports to avoid requiring playwright at import time
# Use explicit imports when needed:
# from worker.crawler.browser import launch_browser
# from worker.crawler.collector import SiteCollector
# from worker.crawler.performance import PerformanceClient, parse_pagespeed_response

__all__ = [
    "launch_browser",
    "SiteCollector",
    "PerformanceClient",
    "parse_pagespeed_response",
]
