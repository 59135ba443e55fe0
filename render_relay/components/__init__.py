"""
Components sub-package for the Render Relay service.

Each component is one rendering strategy: the local headless browser and
the remote scraping service used as its fallback.
"""
from .renderer.playwright_manager import PlaywrightManager
from .remote.scraper_api_client import ScraperApiClient

__all__ = [
    "PlaywrightManager",
    "ScraperApiClient",
]
