"""
Remote rendering component for the Render Relay service.

This sub-package talks to third-party scraping services that fetch pages
on the relay's behalf. It is used as the fallback when the local browser
cannot render a page.
"""
from .scraper_api_client import ScraperApiClient

__all__ = [
    "ScraperApiClient",
]
