"""
Renderer component for the Render Relay service.

This sub-package renders web pages in a headless browser so that the
returned HTML includes content generated by JavaScript.
"""
from .playwright_manager import PlaywrightManager

__all__ = [
    "PlaywrightManager",
]
